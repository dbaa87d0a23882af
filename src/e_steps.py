import logging

import numpy as np

from backend import load_backend
from helpers import document_z_bar, safe_log, softmax
from likelihood import (
    compute_fast_supervised_likelihood,
    compute_supervised_correspondence_likelihood,
    compute_supervised_multinomial_likelihood,
    compute_unsupervised_likelihood,
)
from parameters import CorrespondenceVariationalParameters, VariationalParameters
from progress_events import EventDispatcher, ExpectationProgressEvent


class AbstractEStep:
    """Common machinery of the expectation steps.

    Every E-step maximizes the ELBO of a single document with respect to the
    variational parameters φ (K, V) and γ (K,) by coordinate ascent:

        1. φ_iv ∝ β_iv · exp(Ψ(γ_i)) · (variant specific class factor)
        2. γ_i  = α_i + Σ_v X_v φ_iv

    until the mean relative change of γ drops below ``e_step_tolerance`` or
    ``e_step_iterations`` is reached.  After each document, with probability
    ``compute_likelihood``, the document's ELBO is dispatched as an
    ExpectationProgressEvent; otherwise NaN is dispatched so that listeners
    always receive exactly one event per document.

    Parameters
    ----------
    e_step_iterations : int, default=10
        The max number of times to alternate between the φ and γ updates.
    e_step_tolerance : float, default=1e-2
        The minimum mean relative change of γ to keep iterating.
    compute_likelihood : float, default=1.0
        The fraction of documents for which the likelihood is computed.
    random_state : int, default=0
        Seed for the generator that decides which documents get a likelihood.
    backend : str, default="auto"
        Kernels to use, see ``backend.load_backend``.
    """

    def __init__(self, e_step_iterations=10, e_step_tolerance=1e-2,
                 compute_likelihood=1.0, random_state=0, backend="auto"):
        self.e_step_iterations = e_step_iterations
        self.e_step_tolerance = e_step_tolerance
        self.compute_likelihood = compute_likelihood
        self.random_state = random_state
        self._prng = np.random.default_rng(random_state)
        self.event_dispatcher = EventDispatcher()

        (self._dirichlet_expectation,
         self._column_softmax,
         self._compute_gamma,
         self.backend) = load_backend(backend)
        logging.getLogger("LDA").debug(f"Using {self.backend} backend")

    def get_prng(self):
        return self._prng

    def converged(self, gamma_old, gamma):
        """Mean relative change of γ below the tolerance."""
        return np.mean(np.abs(gamma_old - gamma) / gamma_old) < self.e_step_tolerance

    def doc_e_step(self, doc, parameters):
        raise NotImplementedError

    def _initial_variational_parameters(self, counts, alpha, beta):
        num_topics, voc_size = beta.shape
        assert counts.shape == (voc_size,), (
            f"The document has counts of shape {counts.shape} but the model has "
            f"{voc_size} words. Are the corpus and the model compatible?"
        )
        phi = np.full((num_topics, voc_size), 1.0 / num_topics, dtype=beta.dtype)
        gamma = (alpha + counts.sum() / num_topics).astype(beta.dtype)

        return phi, gamma

    def _iterate(self, counts, alpha, gamma, update_phi):
        """Alternates ``update_phi(gamma)`` and the γ update until convergence."""
        phi = None
        for _ in range(self.e_step_iterations):
            gamma_old = gamma
            phi = update_phi(gamma)
            gamma = self._compute_gamma(alpha, phi, counts)
            if self.converged(gamma_old, gamma):
                break

        return phi, gamma

    def _emit_likelihood(self, compute):
        """Dispatch compute() with probability compute_likelihood, NaN otherwise.

        The generator is consulted exactly once per document whatever the
        outcome, so the sequence of decisions only depends on the seed.
        """
        if self._prng.random() < self.compute_likelihood:
            likelihood = compute()
        else:
            likelihood = np.nan
        self.event_dispatcher.dispatch(ExpectationProgressEvent(likelihood))


class UnsupervisedEStep(AbstractEStep):
    """The classic LDA expectation step [1].

    [1] Blei, David M., Andrew Y. Ng, and Michael I. Jordan. "Latent dirichlet
        allocation." Journal of machine Learning research 3.Jan (2003): 993-1022.
    """

    def doc_e_step(self, doc, parameters):
        counts = doc.words
        alpha = parameters.alpha
        beta = parameters.beta
        log_beta = safe_log(beta)

        phi, gamma = self._initial_variational_parameters(counts, alpha, beta)

        def update_phi(g):
            return self._column_softmax(
                log_beta + self._dirichlet_expectation(g)[:, np.newaxis]
            )

        if self.e_step_iterations > 0:
            phi, gamma = self._iterate(counts, alpha, gamma, update_phi)

        self._emit_likelihood(
            lambda: compute_unsupervised_likelihood(counts, alpha, beta, phi, gamma)
        )

        return VariationalParameters(gamma, phi)


class MultinomialSupervisedEStep(AbstractEStep):
    """Expectation step of the model where every word draws the document's
    class from the multinomial eta[z_n].

    ``eta_weight`` scales the class term in the φ update, trading the
    generative fit of the words for the discriminative fit of the class
    (1 is the exact coordinate ascent update). ``mu`` is the Dirichlet prior
    over the rows of eta, only used in the likelihood.
    """

    def __init__(self, e_step_iterations=10, e_step_tolerance=1e-2, mu=2.0,
                 eta_weight=1.0, compute_likelihood=1.0, random_state=0,
                 backend="auto"):
        super().__init__(e_step_iterations, e_step_tolerance,
                         compute_likelihood, random_state, backend)
        self.mu = mu
        self.eta_weight = eta_weight

    def doc_e_step(self, doc, parameters):
        counts = doc.words
        y = doc.label
        corpus_size = doc.corpus.size()
        prior_y = doc.corpus.get_prior(y)

        alpha = parameters.alpha
        beta = parameters.beta
        eta = parameters.eta
        assert 0 <= y < eta.shape[1], f"Class {y} is outside [0, {eta.shape[1]})."

        # Constant over the iterations: log β_iv + w log η_iy
        log_scores = safe_log(beta) + self.eta_weight * safe_log(eta[:, y])[:, np.newaxis]

        phi, gamma = self._initial_variational_parameters(counts, alpha, beta)

        def update_phi(g):
            return self._column_softmax(
                log_scores + self._dirichlet_expectation(g)[:, np.newaxis]
            )

        if self.e_step_iterations > 0:
            phi, gamma = self._iterate(counts, alpha, gamma, update_phi)

        self._emit_likelihood(
            lambda: compute_supervised_multinomial_likelihood(
                counts, y, alpha, beta, eta, phi, gamma,
                prior_y, self.mu, 1.0 / corpus_size,
            )
        )

        return VariationalParameters(gamma, phi)


class CorrespondenceSupervisedEStep(AbstractEStep):
    """Expectation step of the correspondence model, where the class is
    generated from the topic of one uniformly chosen word occurrence.

    Besides φ and γ it computes λ, the posterior probability that the class
    was generated by an occurrence of each word:

        φ_iv ∝ β_iv exp(Ψ(γ_i) + (λ_v / X_v) log η_iy)
        λ_v  ∝ X_v exp(Σ_i φ_iv log η_iy)
    """

    def __init__(self, e_step_iterations=10, e_step_tolerance=1e-2, mu=2.0,
                 compute_likelihood=1.0, random_state=0, backend="auto"):
        super().__init__(e_step_iterations, e_step_tolerance,
                         compute_likelihood, random_state, backend)
        self.mu = mu

    def doc_e_step(self, doc, parameters):
        counts = doc.words
        y = doc.label
        corpus_size = doc.corpus.size()

        alpha = parameters.alpha
        beta = parameters.beta
        eta = parameters.eta
        assert 0 <= y < eta.shape[1], f"Class {y} is outside [0, {eta.shape[1]})."

        log_beta = safe_log(beta)
        log_eta_y = safe_log(eta[:, y])
        present = counts > 0
        log_counts = np.log(np.where(present, counts, 1)).astype(beta.dtype)
        inv_counts = np.where(present, 1.0 / np.where(present, counts, 1), 0).astype(beta.dtype)

        phi, gamma = self._initial_variational_parameters(counts, alpha, beta)
        n = counts.sum()
        lambda_ = (counts / n if n > 0 else np.zeros(len(counts))).astype(beta.dtype)

        def update_phi(g):
            nonlocal lambda_
            new_phi = self._column_softmax(
                log_beta
                + self._dirichlet_expectation(g)[:, np.newaxis]
                + log_eta_y[:, np.newaxis] * (lambda_ * inv_counts)[np.newaxis, :]
            )
            if n > 0:
                log_lambda = np.where(present, log_counts + log_eta_y @ new_phi, -np.inf)
                lambda_ = softmax(log_lambda).astype(beta.dtype)

            return new_phi

        if self.e_step_iterations > 0:
            phi, gamma = self._iterate(counts, alpha, gamma, update_phi)

        self._emit_likelihood(
            lambda: compute_supervised_correspondence_likelihood(
                counts, y, alpha, beta, eta, phi, gamma, lambda_,
                self.mu, 1.0 / corpus_size,
            )
        )

        return CorrespondenceVariationalParameters(gamma, phi, lambda_)


class FastSupervisedEStep(AbstractEStep):
    """Expectation step of supervised LDA with a softmax classifier on the
    mean topic assignment z̄ = Σ_v X_v φ_v / N.

    The expectation of the log normalizer log Σ_c exp(η_c·z̄) is intractable,
    so it is replaced by its first order Taylor approximation around E_q[z̄],
    which adds (w / N) (η_iy - Σ_c p_c η_ic) to log φ_iv, with p the softmax
    of η·z̄ at the previous iterate and w = ``eta_weight``.
    """

    def __init__(self, e_step_iterations=10, e_step_tolerance=1e-2,
                 eta_weight=1.0, compute_likelihood=1.0, random_state=0,
                 backend="auto"):
        super().__init__(e_step_iterations, e_step_tolerance,
                         compute_likelihood, random_state, backend)
        self.eta_weight = eta_weight

    def doc_e_step(self, doc, parameters):
        counts = doc.words
        y = doc.label

        alpha = parameters.alpha
        beta = parameters.beta
        eta = parameters.eta
        assert 0 <= y < eta.shape[1], f"Class {y} is outside [0, {eta.shape[1]})."

        log_beta = safe_log(beta)
        n = counts.sum()
        scale = self.eta_weight / n if n > 0 else 0.0

        phi, gamma = self._initial_variational_parameters(counts, alpha, beta)

        def update_phi(g):
            nonlocal phi
            p = softmax(eta.T @ document_z_bar(phi, counts))
            class_term = (scale * (eta[:, y] - eta @ p)).astype(beta.dtype)
            phi = self._column_softmax(
                log_beta
                + (self._dirichlet_expectation(g) + class_term)[:, np.newaxis]
            )
            return phi

        if self.e_step_iterations > 0:
            phi, gamma = self._iterate(counts, alpha, gamma, update_phi)

        self._emit_likelihood(
            lambda: compute_fast_supervised_likelihood(counts, y, alpha, beta, eta, phi, gamma)
        )

        return VariationalParameters(gamma, phi)
