import numpy as np
import pandas as pd
import pytest

from corpus import ClassificationCorpus, Corpus, corpus_from_dataframe
from e_steps import CorrespondenceSupervisedEStep, FastSupervisedEStep
from lda import LDA, SUPERVISED_VARIANTS, build_steps
from m_steps import CorrespondenceSupervisedMStep, FastOnlineSupervisedMStep


def mock_data(seed, n=40):
    """Two classes using two disjoint halves of a 20 word vocabulary."""
    rng = np.random.default_rng(seed)
    labels = rng.integers(0, 2, size=n)
    counts = np.zeros((n, 20), dtype=np.int64)
    for d, label in enumerate(labels):
        words = rng.integers(0, 10, size=30) + 10 * label
        np.add.at(counts[d], words, 1)

    df = pd.DataFrame(counts, columns=[f"word{i}" for i in range(20)])
    df["label"] = np.where(labels == 0, "spam", "ham")

    return df


def fit_model(variant="correspondence", **kwargs):
    corpus = corpus_from_dataframe(mock_data(1), label_column="label")
    model = LDA(2, variant=variant, iterations=10, seed=1, backend="numpy", **kwargs)

    return model.fit(corpus, silent=True), corpus


@pytest.fixture
def check_score():
    model, corpus = fit_model()
    return model.score(corpus, silent=True)


def test_history_has_one_entry_per_epoch():
    model, _ = fit_model()

    assert len(model.history) == 10
    assert all(len(h["maximization"]) == 1 for h in model.history)
    assert all(np.isfinite(h["elbo"]) for h in model.history)


def test_transform_returns_topic_proportions():
    model, corpus = fit_model("unsupervised")

    proportions = model.transform(corpus)

    assert proportions.shape == (len(corpus), 2)
    assert np.allclose(proportions.sum(axis=1), 1)


@pytest.mark.parametrize("variant", SUPERVISED_VARIANTS)
def test_predict_returns_original_labels(variant):
    kwargs = {"minibatch_size": 8} if variant == "fast_online" else {}
    model, corpus = fit_model(variant, **kwargs)

    predictions = model.predict(corpus)

    assert len(predictions) == len(corpus)
    assert set(predictions) <= {"spam", "ham"}


def test_correspondence_separates_the_classes(check_score):
    assert check_score["stats"]["accuracy"] >= 0.75


class TestObjects:
    def test_beta(self, check_score):
        beta = check_score["objects"]["beta"]

        assert list(beta.columns) == [f"word{i}" for i in range(20)]
        assert np.allclose(beta.sum(axis=1), 1)

    def test_eta(self, check_score):
        eta = check_score["objects"]["eta"]

        assert set(eta.columns) == {"spam", "ham"}
        assert np.allclose(eta.sum(axis=1), 1)

    def test_likelihood(self, check_score):
        assert check_score["stats"]["likelihood"] < 0


def test_unsupervised_score_has_no_accuracy():
    model, corpus = fit_model("unsupervised")

    results = model.score(corpus, silent=True)

    assert set(results["stats"]) == {"likelihood"}
    assert set(results["objects"]) == {"alpha", "beta"}


def test_score_with_logging():
    """Ensure the logging branch (`silent=False`) executes without errors."""
    model, corpus = fit_model()
    res = model.score(corpus, silent=False)

    assert {"stats", "objects"} == set(res.keys())
    assert "accuracy" in res["stats"]


def test_float32_model():
    model, corpus = fit_model("multinomial", dtype=np.float32)

    assert model.parameters.beta.dtype == np.float32
    assert model.parameters.eta.dtype == np.float32


def test_predict_without_fit_raises():
    """Calling predict before fit should raise an AssertionError."""
    model = LDA(2, variant="multinomial", seed=1)
    corpus = ClassificationCorpus(np.ones((2, 3), dtype=int), [0, 1])

    with pytest.raises(AssertionError):
        _ = model.predict(corpus)


def test_unsupervised_model_cannot_predict():
    model, corpus = fit_model("unsupervised")

    with pytest.raises(AssertionError):
        model.predict(corpus)


def test_supervised_variant_needs_labels():
    model = LDA(2, variant="fast", seed=1, backend="numpy")

    with pytest.raises(AssertionError):
        model.fit(Corpus(np.ones((2, 3), dtype=int)), silent=True)


def test_unknown_variant_raises():
    with pytest.raises(ValueError):
        LDA(2, variant="hierarchical")
    with pytest.raises(ValueError):
        build_steps("hierarchical")


def test_build_steps_forwards_settings():
    e_step, m_step = build_steps("correspondence", mu=3.0, e_step_iterations=4, backend="numpy")

    assert isinstance(e_step, CorrespondenceSupervisedEStep)
    assert isinstance(m_step, CorrespondenceSupervisedMStep)
    assert e_step.mu == m_step.mu == 3.0
    assert e_step.e_step_iterations == 4

    e_step, m_step = build_steps("fast_online", n_classes=4, minibatch_size=16, backend="numpy")

    assert isinstance(e_step, FastSupervisedEStep)
    assert isinstance(m_step, FastOnlineSupervisedMStep)
    assert m_step.minibatch_size == 16
    assert m_step.num_classes == 4


def test_fast_online_needs_classes():
    with pytest.raises(ValueError):
        build_steps("fast_online", backend="numpy")
