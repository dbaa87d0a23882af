import numpy as np
from scipy.optimize import minimize
from scipy.special import logsumexp

from helpers import document_z_bar, normalize_rows, safe_log
from progress_events import EventDispatcher, MaximizationProgressEvent


class AbstractMStep:
    """Common machinery of the maximization steps.

    ``doc_m_step`` accumulates the sufficient statistics of one document and
    ``m_step`` folds them into the model parameters (in place), dispatches a
    MaximizationProgressEvent and zeroes the accumulators.

    The accumulators are allocated up front when ``n_topics`` and ``n_words``
    are given, otherwise from the shape of the first φ seen.  Either way the
    shapes are fixed for the life of the instance.
    """

    def __init__(self, n_topics=None, n_words=None):
        self.event_dispatcher = EventDispatcher()
        self._b = None
        if n_topics is not None and n_words is not None:
            self._b = np.zeros((n_topics, n_words))

    def doc_m_step(self, doc, v_parameters, m_parameters):
        raise NotImplementedError

    def m_step(self, parameters):
        raise NotImplementedError

    def _allocate(self, phi, m_parameters):
        if self._b is None:
            self._b = np.zeros(phi.shape)
        assert self._b.shape == phi.shape, (
            f"phi has shape {phi.shape} but the sufficient statistics have "
            f"shape {self._b.shape}. Are the corpus and the model compatible?"
        )

    def _dispatch(self, likelihood):
        self.event_dispatcher.dispatch(MaximizationProgressEvent(float(likelihood)))

    @staticmethod
    def _phi_scaled(phi, counts):
        # φ_iv · X_v, the expected number of occurrences of word v from topic i
        return phi * counts[np.newaxis, :]


class UnsupervisedMStep(AbstractMStep):
    """β_iv ∝ Σ_d X_dv φ_div. Reports Σ_d Σ_v X_dv Σ_i φ_div log β_iv."""

    def __init__(self, n_topics=None, n_words=None):
        super().__init__(n_topics, n_words)
        self._log_pw = 0.0

    def doc_m_step(self, doc, v_parameters, m_parameters):
        phi = v_parameters.phi
        self._allocate(phi, m_parameters)

        phi_scaled = self._phi_scaled(phi, doc.words)
        self._b += phi_scaled
        self._log_pw += (phi_scaled * safe_log(m_parameters.beta)).sum()

    def m_step(self, parameters):
        assert self._b is not None, "No documents were seen before the m_step."
        parameters.beta = normalize_rows(self._b).astype(parameters.dtype)

        self._dispatch(self._log_pw)

        self._b.fill(0)
        self._log_pw = 0.0


class _SupervisedMultinomialMStep(AbstractMStep):
    """Shared accumulators of the multinomial and correspondence M-steps.

    η_ic ∝ h_ic + mu - 1 where h_ic is the expected number of times topic i
    generated class c.
    """

    def __init__(self, mu=2.0, n_topics=None, n_words=None, n_classes=None):
        super().__init__(n_topics, n_words)
        self.mu = mu
        self._h = None
        self._log_py = 0.0
        if n_topics is not None and n_classes is not None:
            self._h = np.zeros((n_topics, n_classes))

    def _allocate(self, phi, m_parameters):
        super()._allocate(phi, m_parameters)
        if self._h is None:
            self._h = np.zeros(m_parameters.eta.shape)
        assert self._h.shape == m_parameters.eta.shape, (
            f"eta has shape {m_parameters.eta.shape} but the sufficient "
            f"statistics have shape {self._h.shape}."
        )

    def _topic_class_statistics(self, doc, v_parameters):
        raise NotImplementedError

    def doc_m_step(self, doc, v_parameters, m_parameters):
        phi = v_parameters.phi
        y = doc.label
        self._allocate(phi, m_parameters)
        assert 0 <= y < self._h.shape[1], f"Class {y} is outside [0, {self._h.shape[1]})."

        # Update for beta without smoothing
        self._b += self._phi_scaled(phi, doc.words)

        # Update for eta, smoothed in m_step
        responsibility = self._topic_class_statistics(doc, v_parameters)
        self._h[:, y] += responsibility

        # E_q[log p(y | z, η)] under the current η, reported in m_step
        self._log_py += responsibility @ safe_log(m_parameters.eta[:, y])

    def m_step(self, parameters):
        assert self._b is not None, "No documents were seen before the m_step."
        parameters.beta = normalize_rows(self._b).astype(parameters.dtype)
        parameters.eta = normalize_rows(self._h + self.mu - 1).astype(parameters.dtype)

        self._dispatch(self._log_py)

        self._b.fill(0)
        self._h.fill(0)
        self._log_py = 0.0


class MultinomialSupervisedMStep(_SupervisedMultinomialMStep):
    """Every word occurrence generated the class: h_·y += Σ_v X_v φ_v."""

    def _topic_class_statistics(self, doc, v_parameters):
        return v_parameters.phi @ doc.words.astype(np.float64)


class CorrespondenceSupervisedMStep(_SupervisedMultinomialMStep):
    """One word occurrence generated the class: h_·y += Σ_v λ_v φ_v.

    The realized class of the document is used directly, there is no
    approximation of a log normalizer.
    """

    def _topic_class_statistics(self, doc, v_parameters):
        return v_parameters.phi @ v_parameters.lambda_.astype(np.float64)


def softmax_objective(eta_flat, z_bars, y, weights, regularization_penalty, shape):
    """Weighted mean negative log-likelihood of a softmax classifier on z̄,
    plus an L2 penalty, and its gradient with respect to η.

    Parameters
    ----------
    eta_flat : ndarray of shape (K * C,)
    z_bars : ndarray of shape (K, D)
        Expected topic proportions of each document.
    y : ndarray of shape (D,)
    weights : ndarray of shape (D,)
        Weight of every document (its class weight).
    regularization_penalty : float
    shape : tuple
        (K, C)
    """
    eta = eta_flat.reshape(shape)
    n = z_bars.shape[1]

    scores = eta.T @ z_bars                                   # (C, D)
    log_p = scores - logsumexp(scores, axis=0, keepdims=True)
    log_py = log_p[y, np.arange(n)]

    residual = -np.exp(log_p)
    residual[y, np.arange(n)] += 1                            # onehot(y) - p
    gradient = -(z_bars * weights) @ residual.T / n + regularization_penalty * eta
    value = -(weights * log_py).sum() / n + 0.5 * regularization_penalty * (eta ** 2).sum()

    return value, gradient.ravel()


class FastSupervisedMStep(AbstractMStep):
    """Batch maximization step of supervised LDA with a softmax classifier.

    β is the normalized expected word counts; η maximizes the (Taylor
    approximated) class log-likelihood Σ_d log softmax(η^T z̄_d)_{y_d} minus an
    L2 penalty, with L-BFGS limited to ``m_step_iterations`` iterations.
    """

    def __init__(self, m_step_iterations=10, m_step_tolerance=1e-2,
                 regularization_penalty=1e-2, n_topics=None, n_words=None):
        super().__init__(n_topics, n_words)
        self.m_step_iterations = m_step_iterations
        self.m_step_tolerance = m_step_tolerance
        self.regularization_penalty = regularization_penalty
        self._z_bars = []
        self._y = []

    def doc_m_step(self, doc, v_parameters, m_parameters):
        phi = v_parameters.phi
        self._allocate(phi, m_parameters)
        assert 0 <= doc.label < m_parameters.eta.shape[1], (
            f"Class {doc.label} is outside [0, {m_parameters.eta.shape[1]})."
        )

        self._b += self._phi_scaled(phi, doc.words)
        self._z_bars.append(document_z_bar(phi.astype(np.float64), doc.words))
        self._y.append(doc.label)

    def m_step(self, parameters):
        assert self._b is not None, "No documents were seen before the m_step."
        parameters.beta = normalize_rows(self._b).astype(parameters.dtype)

        z_bars = np.array(self._z_bars).T
        y = np.array(self._y, dtype=np.int64)
        weights = np.ones(len(y))
        shape = parameters.eta.shape

        result = minimize(
            softmax_objective,
            parameters.eta.astype(np.float64).ravel(),
            args=(z_bars, y, weights, self.regularization_penalty, shape),
            jac=True,
            method="L-BFGS-B",
            tol=self.m_step_tolerance,
            options={"maxiter": self.m_step_iterations},
        )
        eta = result.x.reshape(shape)
        parameters.eta = eta.astype(parameters.dtype)

        scores = eta.T @ z_bars
        log_py = (scores - logsumexp(scores, axis=0, keepdims=True))[y, np.arange(len(y))]
        self._dispatch(log_py.sum())

        self._b.fill(0)
        self._z_bars = []
        self._y = []


class FastOnlineSupervisedMStep(AbstractMStep):
    """Online maximization step of supervised LDA with a softmax classifier.

    The parameters are updated every ``minibatch_size`` documents instead of
    once per pass over the corpus:

        β <- w_β β + (1 - w_β) MLE(minibatch)
        v <- momentum v - learning_rate ∇η
        η <- η + v

    where ∇η is the gradient of the class-weighted mean negative
    log-likelihood of the minibatch (with the first order Taylor
    approximation of the log normalizer) plus ``regularization_penalty`` η.
    Because the loss is a mean over the minibatch, the penalty is the one of
    a single document; it is applied once per update.

    Parameters
    ----------
    class_weights : array-like of shape (C,), optional
        Weights to account for class imbalance.
    num_classes : int, optional
        Number of classes, used for uniform weights when class_weights is None.
    regularization_penalty : float, default=1e-2
    minibatch_size : int, default=128
    eta_momentum : float, default=0.9
    eta_learning_rate : float, default=0.01
    beta_weight : float, default=0.9
    """

    def __init__(self, class_weights=None, num_classes=None,
                 regularization_penalty=1e-2, minibatch_size=128,
                 eta_momentum=0.9, eta_learning_rate=0.01, beta_weight=0.9,
                 n_topics=None, n_words=None):
        super().__init__(n_topics, n_words)
        if class_weights is None:
            if num_classes is None:
                raise ValueError("Either class_weights or num_classes is required.")
            class_weights = np.ones(num_classes)
        self.class_weights = np.asarray(class_weights, dtype=np.float64)
        self.num_classes = len(self.class_weights)

        self.regularization_penalty = regularization_penalty
        self.minibatch_size = minibatch_size
        self.eta_momentum = eta_momentum
        self.eta_learning_rate = eta_learning_rate
        self.beta_weight = beta_weight

        self._expected_z_bar = None
        self._y = np.zeros(minibatch_size, dtype=np.int64)
        self._eta_velocity = None
        self.docs_seen_so_far = 0
        self.updates = 0
        if n_topics is not None:
            self._expected_z_bar = np.zeros((n_topics, minibatch_size))
            self._eta_velocity = np.zeros((n_topics, self.num_classes))

    def _allocate(self, phi, m_parameters):
        super()._allocate(phi, m_parameters)
        if self._expected_z_bar is None:
            self._expected_z_bar = np.zeros((phi.shape[0], self.minibatch_size))
            self._eta_velocity = np.zeros((phi.shape[0], self.num_classes))
        assert self._eta_velocity.shape == m_parameters.eta.shape, (
            f"eta has shape {m_parameters.eta.shape} but expected "
            f"{self._eta_velocity.shape}."
        )

    def doc_m_step(self, doc, v_parameters, m_parameters):
        """Accumulates one document and, after ``minibatch_size`` of them,
        updates ``m_parameters`` in place."""
        phi = v_parameters.phi
        y = doc.label
        self._allocate(phi, m_parameters)
        assert 0 <= y < self.num_classes, f"Class {y} is outside [0, {self.num_classes})."

        self._b += self.class_weights[y] * self._phi_scaled(phi, doc.words)
        self._expected_z_bar[:, self.docs_seen_so_far] = document_z_bar(
            phi.astype(np.float64), doc.words
        )
        self._y[self.docs_seen_so_far] = y

        self.docs_seen_so_far += 1
        if self.docs_seen_so_far == self.minibatch_size:
            self._update(m_parameters, self.docs_seen_so_far)
            self.docs_seen_so_far = 0

    def m_step(self, parameters):
        """Flushes a partially filled minibatch, if any."""
        if self.docs_seen_so_far > 0:
            self._update(parameters, self.docs_seen_so_far)
            self.docs_seen_so_far = 0

    def _update(self, parameters, n):
        z_bars = self._expected_z_bar[:, :n]
        y = self._y[:n]
        weights = self.class_weights[y]

        parameters.beta = (
            self.beta_weight * parameters.beta
            + (1 - self.beta_weight) * normalize_rows(self._b)
        ).astype(parameters.dtype)

        eta = parameters.eta.astype(np.float64)
        _, gradient = softmax_objective(
            eta.ravel(), z_bars, y, weights, self.regularization_penalty, eta.shape
        )
        scores = eta.T @ z_bars
        log_p = scores - logsumexp(scores, axis=0, keepdims=True)
        log_py = (weights * log_p[y, np.arange(n)]).sum()

        self._eta_velocity = (
            self.eta_momentum * self._eta_velocity
            - self.eta_learning_rate * gradient.reshape(eta.shape)
        )
        parameters.eta = (eta + self._eta_velocity).astype(parameters.dtype)

        self._dispatch(log_py)

        self._b.fill(0)
        self.updates += 1
