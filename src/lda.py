from datetime import datetime

import numpy as np
import pandas as pd
from tqdm.auto import tqdm

from e_steps import (
    CorrespondenceSupervisedEStep,
    FastSupervisedEStep,
    MultinomialSupervisedEStep,
    UnsupervisedEStep,
)
from expectation_maximization import ExpectationMaximization
from helpers import document_z_bar, normalize_rows, safe_log
from m_steps import (
    CorrespondenceSupervisedMStep,
    FastOnlineSupervisedMStep,
    FastSupervisedMStep,
    MultinomialSupervisedMStep,
    UnsupervisedMStep,
)
from parameters import ModelParameters, SupervisedModelParameters
from progress_events import ProgressRecorder

from logger import setup_logger


SUPERVISED_VARIANTS = ("multinomial", "correspondence", "fast", "fast_online")
VARIANTS = ("unsupervised",) + SUPERVISED_VARIANTS


def build_steps(
    variant,
    n_classes=None,
    e_step_iterations=10,
    e_step_tolerance=1e-2,
    compute_likelihood=1.0,
    random_state=0,
    mu=2.0,
    eta_weight=1.0,
    m_step_iterations=10,
    m_step_tolerance=1e-2,
    regularization_penalty=1e-2,
    minibatch_size=128,
    eta_momentum=0.9,
    eta_learning_rate=0.01,
    beta_weight=0.9,
    class_weights=None,
    backend="auto",
):
    """Returns the matching (e_step, m_step) pair for a model variant.

    Args:
        variant: One of "unsupervised", "multinomial", "correspondence",
            "fast" or "fast_online".
        n_classes: Number of classes, needed by "fast_online" when no
            class_weights are given.

    The remaining keyword arguments are forwarded to the step constructors
    that accept them.

    Raises:
        ValueError: If the variant is unknown.
    """
    e_kwargs = dict(
        e_step_iterations=e_step_iterations,
        e_step_tolerance=e_step_tolerance,
        compute_likelihood=compute_likelihood,
        random_state=random_state,
        backend=backend,
    )

    if variant == "unsupervised":
        return UnsupervisedEStep(**e_kwargs), UnsupervisedMStep()
    if variant == "multinomial":
        return (
            MultinomialSupervisedEStep(mu=mu, eta_weight=eta_weight, **e_kwargs),
            MultinomialSupervisedMStep(mu=mu),
        )
    if variant == "correspondence":
        return (
            CorrespondenceSupervisedEStep(mu=mu, **e_kwargs),
            CorrespondenceSupervisedMStep(mu=mu),
        )
    if variant == "fast":
        return (
            FastSupervisedEStep(eta_weight=eta_weight, **e_kwargs),
            FastSupervisedMStep(
                m_step_iterations=m_step_iterations,
                m_step_tolerance=m_step_tolerance,
                regularization_penalty=regularization_penalty,
            ),
        )
    if variant == "fast_online":
        return (
            FastSupervisedEStep(eta_weight=eta_weight, **e_kwargs),
            FastOnlineSupervisedMStep(
                class_weights=class_weights,
                num_classes=n_classes,
                regularization_penalty=regularization_penalty,
                minibatch_size=minibatch_size,
                eta_momentum=eta_momentum,
                eta_learning_rate=eta_learning_rate,
                beta_weight=beta_weight,
            ),
        )

    raise ValueError(f"Unknown variant '{variant}'. Choose one of {', '.join(VARIANTS)}.")


class LDA:
    """
    Latent Dirichlet Allocation, unsupervised or supervised.

    This model computes the parameters of an LDA model via variational expectation-maximization (EM).

    Parameters
    ----------
    n_topics : int
        The number of topics.

    variant: str, default="unsupervised"
        Which model to fit: "unsupervised", "multinomial", "correspondence", "fast" or "fast_online". All but the
        first need a ClassificationCorpus.

    iterations: int, default=20
        The number of EM epochs (full passes over the corpus).

    alpha: float, default=0.1
        The value of the symmetric Dirichlet prior over the topic proportions.

    seed: int, default=None
        Seed for reproducibility of the initialization and the likelihood sampling.

    backend: str, default="auto"
        The backend to use for the E-step kernels.

    debug: bool, default=False
        Log the ELBO after every epoch.

    dtype: numpy dtype, default=np.float64
        Precision of the model parameters.

    **step_kwargs
        Forwarded to ``build_steps`` (e_step_iterations, e_step_tolerance, compute_likelihood, mu, eta_weight,
        regularization_penalty, minibatch_size, ...).

    Attributes
    ---------
    parameters: ModelParameters or SupervisedModelParameters
        The fitted parameters.

    history: list of dict
        The ELBO and the M-step reports of every epoch.

    """

    parameters = None
    corpus = None
    history = None
    rng = None

    def __init__(
        self,
        n_topics,
        variant="unsupervised",
        iterations=20,
        alpha=0.1,
        seed=None,
        backend="auto",
        debug=False,
        dtype=np.float64,
        **step_kwargs,
    ):
        if variant not in VARIANTS:
            raise ValueError(f"Unknown variant '{variant}'. Choose one of {', '.join(VARIANTS)}.")

        self.start_time = datetime.now()
        self.n_topics = n_topics
        self.variant = variant
        self.iterations = iterations
        self.alpha = alpha
        self.seed = seed
        self.backend = backend
        self.debug = debug
        self.dtype = dtype
        self.step_kwargs = step_kwargs

        self.rng = np.random.default_rng(seed)

        self.logger = setup_logger("LDA")

    @property
    def supervised(self):
        return self.variant in SUPERVISED_VARIANTS

    def _init_parameters(self, corpus):
        alpha = np.full(self.n_topics, self.alpha, dtype=self.dtype)
        beta = normalize_rows(
            self.rng.random((self.n_topics, corpus.n_words)) + 1.0 / corpus.n_words
        ).astype(self.dtype)

        if not self.supervised:
            return ModelParameters(alpha, beta)

        if self.variant in ("fast", "fast_online"):
            eta = np.zeros((self.n_topics, corpus.n_classes), dtype=self.dtype)
        else:
            eta = np.full((self.n_topics, corpus.n_classes), 1.0 / corpus.n_classes, dtype=self.dtype)

        return SupervisedModelParameters(alpha, beta, eta)

    def _check_corpus(self, corpus):
        if self.supervised:
            assert hasattr(corpus, "n_classes"), (
                f"The {self.variant} variant needs a ClassificationCorpus."
            )

    def fit(self, corpus, silent=False):
        """Fits the model with ``iterations`` EM epochs.

         Args:
             corpus: Corpus, or ClassificationCorpus for the supervised variants.
             silent: If True, suppresses progress output

         Returns:
             self
         """
        self._check_corpus(corpus)

        if not silent:
            self.logger.info(
                f"Running {self.iterations} EM iterations of the {self.variant} variant with {self.n_topics} topics."
            )

        self.corpus = corpus
        self.parameters = self._init_parameters(corpus)

        e_step, m_step = build_steps(
            self.variant,
            n_classes=getattr(corpus, "n_classes", None),
            random_state=self.seed,
            backend=self.backend,
            **self.step_kwargs,
        )
        self.em = ExpectationMaximization(e_step, m_step)

        recorder = ProgressRecorder()
        self.em.event_dispatcher.add_listener(recorder)

        self.history = []
        for j in tqdm(range(self.iterations), disable=silent):
            recorder.reset()
            self.em.run_epoch(corpus, self.parameters)

            self.history.append(
                {"elbo": recorder.elbo(), "maximization": list(recorder.maximization)}
            )
            if self.debug:
                self.logger.debug(f"ELBO at epoch {j} is {recorder.elbo():.2f}")

        return self

    def _check_is_fitted(self):
        assert self.parameters is not None, "You need to fit the model before predicting."

    def _e_step(self):
        # Label free inference, used on unseen documents
        kwargs = {
            k: v for k, v in self.step_kwargs.items()
            if k in ("e_step_iterations", "e_step_tolerance")
        }
        return UnsupervisedEStep(
            compute_likelihood=0.0, random_state=self.seed, backend=self.backend, **kwargs
        )

    def transform(self, corpus):
        """Topic proportions of every document.

        Returns:
            Array of shape (n_documents, n_topics), each row normalized γ.
        """
        self._check_is_fitted()

        e_step = self._e_step()
        parameters = self.parameters.frozen()
        gammas = np.array([e_step.doc_e_step(doc, parameters).gamma for doc in corpus])

        return gammas / gammas.sum(axis=1, keepdims=True)

    def _class_scores(self, z_bar):
        eta = self.parameters.eta.astype(np.float64)
        if self.variant in ("fast", "fast_online"):
            return eta.T @ z_bar
        return z_bar @ safe_log(eta)

    def predict(self, corpus):
        """Predicts the class of every document (supervised variants only).

        The topic assignments are inferred without the label, then the class
        with the highest score given the expected topic proportions z̄ is chosen.

        Returns:
            list with the predicted labels, in the original label space.
        """
        self._check_is_fitted()
        assert self.supervised, "Only the supervised variants can predict classes."

        e_step = self._e_step()
        parameters = self.parameters.frozen()
        predictions = []
        for doc in corpus:
            phi = e_step.doc_e_step(doc, parameters).phi
            z_bar = document_z_bar(phi.astype(np.float64), doc.words)
            predictions.append(int(np.argmax(self._class_scores(z_bar))))

        if hasattr(self.corpus, "return_original_labels"):
            return self.corpus.return_original_labels(predictions)
        return predictions

    def score(self, corpus, silent=False):
        """Computes goodness of fit statistics and returns the fitted parameters.

        Args:
            corpus: The (labelled, for supervised variants) corpus to evaluate.
            silent: If True, suppresses logging output. Defaults to False.

        Returns:
            dict: Contains two sub-dictionaries:
                stats: Model performance metrics
                    - likelihood: ELBO of the corpus under the fitted parameters
                    - accuracy: Fraction of correctly predicted classes (supervised variants only)
                objects: Fitted model parameters
                    - alpha: Dirichlet prior, shape (n_topics,)
                    - beta: DataFrame of topic-word probabilities, columns are the vocabulary
                    - eta: DataFrame of topic-class parameters, columns are the original labels

        Example:
            >>> results = model.score(corpus)
            >>> print(f"Model accuracy: {results['stats']['accuracy']:.3f}")
        """
        self._check_is_fitted()

        recorder = ProgressRecorder()
        e_step = self._e_step()
        e_step.compute_likelihood = 1.0
        e_step.event_dispatcher.add_listener(recorder)
        parameters = self.parameters.frozen()
        for doc in corpus:
            e_step.doc_e_step(doc, parameters)

        stats = {"likelihood": recorder.elbo()}
        objects = {
            "alpha": self.parameters.alpha.copy(),
            "beta": pd.DataFrame(self.parameters.beta, columns=self.corpus.vocabulary),
        }

        if self.supervised:
            predictions = self.predict(corpus)
            truth = self.corpus.return_original_labels(corpus.y)
            stats["accuracy"] = float(np.mean([a == b for a, b in zip(predictions, truth)]))
            objects["eta"] = pd.DataFrame(
                self.parameters.eta,
                columns=self.corpus.return_original_labels(range(self.parameters.n_classes)),
            )

        if not silent:
            self.logger.debug(
                f"Done in {(datetime.now() - self.start_time).total_seconds() / 60.0:.2f} minutes."
            )
            self.logger.info(
                " and ".join([f"the {k} is {v:.3f}" for k, v in stats.items()]).capitalize() + "."
            )

        return {"stats": stats, "objects": objects}
