import numpy as np

from corpus import ClassificationCorpus
from e_steps import CorrespondenceSupervisedEStep, FastSupervisedEStep, UnsupervisedEStep
from expectation_maximization import ExpectationMaximization
from m_steps import CorrespondenceSupervisedMStep, FastOnlineSupervisedMStep, UnsupervisedMStep
from parameters import SupervisedModelParameters
from progress_events import EventDispatcher, ProgressRecorder


def mock_corpus(seed, n_docs=20, n_words=30, n_classes=3):
    rng = np.random.default_rng(seed)

    return ClassificationCorpus(
        rng.exponential(scale=5.0, size=(n_docs, n_words)).astype(np.int64),
        rng.integers(0, n_classes, size=n_docs),
        n_classes=n_classes,
    )


def mock_model(seed, n_topics=4, n_words=30, n_classes=3, eta_value=None):
    rng = np.random.default_rng(seed)
    beta = rng.random((n_topics, n_words))
    beta /= beta.sum(axis=1, keepdims=True)
    eta_value = 1.0 / n_classes if eta_value is None else eta_value

    return SupervisedModelParameters(
        np.full(n_topics, 0.1), beta, np.full((n_topics, n_classes), eta_value)
    )


def test_one_event_per_document_and_per_m_step():
    corpus = mock_corpus(0)
    model = mock_model(1)
    em = ExpectationMaximization(
        CorrespondenceSupervisedEStep(backend="numpy"), CorrespondenceSupervisedMStep()
    )
    recorder = ProgressRecorder()
    em.event_dispatcher.add_listener(recorder)

    em.run_epoch(corpus, model)

    assert len(recorder.expectation) == len(corpus)
    assert len(recorder.maximization) == 1
    assert recorder.maximization[0] < 0


def test_steps_share_the_given_dispatcher():
    dispatcher = EventDispatcher()
    e_step = UnsupervisedEStep(backend="numpy")
    m_step = UnsupervisedMStep()

    em = ExpectationMaximization(e_step, m_step, event_dispatcher=dispatcher)

    assert em.event_dispatcher is dispatcher
    assert e_step.event_dispatcher is dispatcher
    assert m_step.event_dispatcher is dispatcher


def test_e_step_gets_a_read_only_view():
    corpus = mock_corpus(2, n_docs=3)
    model = mock_model(3)
    seen = []

    class SpyEStep(UnsupervisedEStep):
        def doc_e_step(self, doc, parameters):
            seen.append(parameters.beta.flags.writeable)
            return super().doc_e_step(doc, parameters)

    em = ExpectationMaximization(SpyEStep(backend="numpy"), UnsupervisedMStep())
    em.run_epoch(corpus, model)

    assert seen == [False, False, False]
    assert model.beta.flags.writeable


def test_run_epoch_updates_the_parameters_in_place():
    corpus = mock_corpus(4)
    model = mock_model(5)
    beta_before = model.beta.copy()
    em = ExpectationMaximization(UnsupervisedEStep(backend="numpy"), UnsupervisedMStep())

    returned = em.run_epoch(corpus, model)

    assert returned is model
    assert not np.allclose(model.beta, beta_before)
    assert np.allclose(model.beta.sum(axis=1), 1)


def test_partial_fit_with_online_m_step():
    corpus = mock_corpus(6, n_docs=10)
    model = mock_model(7, eta_value=0.0)
    m_step = FastOnlineSupervisedMStep(num_classes=3, minibatch_size=5)
    em = ExpectationMaximization(FastSupervisedEStep(backend="numpy"), m_step)
    recorder = ProgressRecorder()
    em.event_dispatcher.add_listener(recorder)

    em.partial_fit(corpus, model)

    assert m_step.updates == 2
    assert len(recorder.maximization) == 2
    assert len(recorder.expectation) == 10


def test_elbo_improves_over_epochs():
    corpus = mock_corpus(8, n_docs=30)
    model = mock_model(9)
    em = ExpectationMaximization(
        UnsupervisedEStep(e_step_iterations=50, e_step_tolerance=1e-6, backend="numpy"),
        UnsupervisedMStep(),
    )
    recorder = ProgressRecorder()
    em.event_dispatcher.add_listener(recorder)

    elbos = []
    for _ in range(5):
        recorder.reset()
        em.run_epoch(corpus, model)
        elbos.append(recorder.elbo())

    assert elbos[-1] > elbos[0]


def test_listeners_attached_to_the_steps_are_kept():
    corpus = mock_corpus(10, n_docs=4)
    model = mock_model(11)
    e_step = UnsupervisedEStep(backend="numpy")
    m_step = UnsupervisedMStep()
    e_recorder, m_recorder = ProgressRecorder(), ProgressRecorder()
    e_step.event_dispatcher.add_listener(e_recorder)
    m_step.event_dispatcher.add_listener(m_recorder)

    em = ExpectationMaximization(e_step, m_step, event_dispatcher=EventDispatcher())
    em.run_epoch(corpus, model)

    assert len(e_recorder.expectation) == 4
    assert len(m_recorder.maximization) == 1
