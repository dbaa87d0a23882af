import logging

import numpy as np

from helpers import _invert_dict


class Document:
    def __init__(self, words, corpus=None):
        self.words = words
        self.corpus = corpus


class ClassificationDocument(Document):
    def __init__(self, words, label, corpus=None):
        super().__init__(words, corpus)
        self.label = label


class Corpus:
    """A read-only collection of bag-of-words documents.

    Parameters
    ----------
    X : array-like of shape (n_documents, n_words)
        Non-negative integer word counts, one row per document.
    vocabulary : list, optional
        Names of the words (the columns of ``X``).
    """

    def __init__(self, X, vocabulary=None):
        X = np.asarray(X)
        assert X.ndim == 2, "The word counts must be a (documents, words) matrix."
        assert np.issubdtype(X.dtype, np.integer) or np.all(X == np.round(X)), (
            "Word counts must be integers."
        )
        assert np.all(X >= 0), "Word counts can't be negative."

        self.X = X.astype(np.int64)
        self.vocabulary = (
            list(vocabulary) if vocabulary is not None else list(range(X.shape[1]))
        )
        assert len(self.vocabulary) == self.n_words, (
            f"The vocabulary has {len(self.vocabulary)} words but the counts have {self.n_words} columns."
        )

    @property
    def n_words(self):
        return self.X.shape[1]

    def __len__(self):
        return self.X.shape[0]

    def size(self):
        return len(self)

    def __getitem__(self, i):
        return Document(self.X[i], corpus=self)

    def __iter__(self):
        for i in range(len(self)):
            yield self[i]


class ClassificationCorpus(Corpus):
    """A corpus whose documents carry an integer class label in [0, n_classes)."""

    labels_dict = None

    def __init__(self, X, y, vocabulary=None, n_classes=None):
        super().__init__(X, vocabulary)

        y = np.asarray(y)
        assert y.shape == (len(self),), (
            f"Expected {len(self)} labels but got an array of shape {y.shape}."
        )
        assert np.issubdtype(y.dtype, np.integer), "Class labels must be integers."
        self.y = y.astype(np.int64)

        self.n_classes = int(n_classes) if n_classes is not None else int(self.y.max()) + 1
        assert np.all((self.y >= 0) & (self.y < self.n_classes)), (
            f"Class labels must lie in [0, {self.n_classes})."
        )

        self.priors = np.bincount(self.y, minlength=self.n_classes) / len(self)

    def get_prior(self, label):
        return self.priors[label]

    def __getitem__(self, i):
        return ClassificationDocument(self.X[i], int(self.y[i]), corpus=self)

    def return_original_labels(self, labels):
        if self.labels_dict is None:
            return list(labels)
        inverse = _invert_dict(self.labels_dict)
        return [inverse[int(a)] for a in labels]


def _check_data(df):
    assert df.isnull().sum().sum() == 0, "Data contains missing values. Aborting."


def _create_values_dict(x):
    values = sorted(set(x))
    return {b: int(a) for (a, b) in zip(range(len(values)), values)}


def _drop_empty_documents(df, word_columns):
    empty = df[word_columns].sum(axis=1) == 0
    if empty.any():
        logger = logging.getLogger("LDA")
        logger.warning(
            f"The documents {', '.join([str(i) for i in df.index[empty]])} have no words "
            f"so I'll remove them."
        )
        df = df[~empty]

    return df


def corpus_from_dataframe(df, label_column=None, labels_dict=None, vocabulary=None):
    """Builds a corpus from a pandas DataFrame of word counts.

    Args:
        df: DataFrame with one row per document and one column per word.
        label_column: Name of the column holding the class of each document.
            When given, a ClassificationCorpus is returned.
        labels_dict: Mapping from original labels to class indices. Pass the
            ``labels_dict`` of a training corpus to encode a test set the same
            way; labels missing from it are rejected.
        vocabulary: Word columns of a training corpus. The counts are
            reordered to match them, words absent from the DataFrame get zero
            counts and words not in the vocabulary are rejected.

    Returns:
        Corpus or ClassificationCorpus, with the columns as vocabulary.
    """
    _check_data(df)

    word_columns = [c for c in df.columns if c != label_column]
    df = _drop_empty_documents(df, word_columns)

    if vocabulary is not None:
        unknown = set(word_columns).difference(vocabulary)
        assert not unknown, f"The words {unknown} were not seen in the training data."
        word_columns = list(vocabulary)
        counts = df.reindex(columns=word_columns, fill_value=0)
        if label_column is not None:
            counts[label_column] = df[label_column]
        df = counts

    if label_column is None:
        return Corpus(df[word_columns].values, vocabulary=word_columns)

    if labels_dict is None:
        labels_dict = _create_values_dict(df[label_column])
    unknown = set(df[label_column]).difference(labels_dict)
    assert not unknown, f"The labels {unknown} were not seen in the training data."

    corpus = ClassificationCorpus(
        df[word_columns].values,
        np.array([labels_dict[a] for a in df[label_column]], dtype=np.int64),
        vocabulary=word_columns,
        n_classes=len(labels_dict),
    )
    corpus.labels_dict = labels_dict

    return corpus

