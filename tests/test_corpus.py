import logging

import numpy as np
import pandas as pd
import pytest

from corpus import ClassificationCorpus, ClassificationDocument, Corpus, corpus_from_dataframe


def word_counts():
    return pd.DataFrame(
        {
            "apple": [1, 0, 3, 0],
            "pear": [0, 2, 1, 0],
            "plum": [4, 1, 0, 0],
            "label": ["fruit", "tree", "fruit", "tree"],
        }
    )


def test_corpus_documents_reference_their_corpus():
    corpus = Corpus(np.array([[1, 2], [0, 3]]))

    docs = list(corpus)

    assert len(corpus) == 2
    assert corpus.size() == 2
    assert corpus.n_words == 2
    assert all(doc.corpus is corpus for doc in docs)
    assert list(docs[1].words) == [0, 3]


def test_classification_corpus_priors_and_labels():
    corpus = ClassificationCorpus(np.ones((4, 3), dtype=int), [0, 1, 1, 2])

    assert corpus.n_classes == 3
    assert np.allclose(corpus.priors, [0.25, 0.5, 0.25])
    assert corpus.get_prior(1) == pytest.approx(0.5)
    assert isinstance(corpus[2], ClassificationDocument)
    assert corpus[2].label == 1


def test_labels_outside_the_classes_raise():
    with pytest.raises(AssertionError):
        ClassificationCorpus(np.ones((2, 3), dtype=int), [0, 3], n_classes=2)


def test_negative_counts_raise():
    with pytest.raises(AssertionError):
        Corpus(np.array([[1, -1]]))


def test_non_integer_counts_raise():
    with pytest.raises(AssertionError):
        Corpus(np.array([[1.5, 1.0]]))


def test_from_dataframe_maps_labels_and_vocabulary():
    df = word_counts().iloc[:3]

    corpus = corpus_from_dataframe(df, label_column="label")

    assert corpus.vocabulary == ["apple", "pear", "plum"]
    assert corpus.labels_dict == {"fruit": 0, "tree": 1}
    assert list(corpus.y) == [0, 1, 0]
    assert corpus.return_original_labels([1, 0]) == ["tree", "fruit"]


def test_from_dataframe_without_labels_returns_plain_corpus():
    corpus = corpus_from_dataframe(word_counts().drop(columns="label").iloc[:3])

    assert type(corpus) is Corpus
    assert len(corpus) == 3


def test_empty_documents_are_dropped(caplog):
    # The last document has no words; that row should be removed
    logger = logging.getLogger("LDA")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.WARNING, logger="LDA")

    try:
        corpus = corpus_from_dataframe(word_counts(), label_column="label")
    finally:
        logger.removeHandler(caplog.handler)

    assert len(corpus) == 3
    assert any("have no words" in r.getMessage() for r in caplog.records)


def test_missing_values_raise():
    df = word_counts()
    df.loc[0, "apple"] = None

    with pytest.raises(AssertionError):
        corpus_from_dataframe(df, label_column="label")


def test_test_labels_must_be_known():
    train = corpus_from_dataframe(word_counts().iloc[:3], label_column="label")
    test = word_counts().iloc[:3].copy()
    test.loc[0, "label"] = "bush"

    with pytest.raises(AssertionError):
        corpus_from_dataframe(test, label_column="label", labels_dict=train.labels_dict)


def test_test_words_follow_the_training_vocabulary():
    train = corpus_from_dataframe(word_counts().iloc[:3], label_column="label")
    test = word_counts().iloc[:3][["plum", "label", "apple"]]

    corpus = corpus_from_dataframe(
        test, label_column="label", labels_dict=train.labels_dict, vocabulary=train.vocabulary
    )

    assert corpus.vocabulary == ["apple", "pear", "plum"]
    assert corpus.X.tolist() == [[1, 0, 4], [0, 0, 1], [3, 0, 0]]
    assert corpus.y.tolist() == train.y.tolist()


def test_test_words_must_be_known():
    train = corpus_from_dataframe(word_counts().iloc[:3], label_column="label")
    test = word_counts().iloc[:3].rename(columns={"pear": "fig"})

    with pytest.raises(AssertionError):
        corpus_from_dataframe(test, label_column="label", vocabulary=train.vocabulary)
