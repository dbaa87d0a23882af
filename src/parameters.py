import numpy as np


def _read_only(x):
    view = x.view()
    view.flags.writeable = False
    return view


class ModelParameters:
    """Global parameters of an unsupervised LDA model.

    Parameters
    ----------
    alpha : array-like of shape (K,)
        Dirichlet prior over the topic proportions, strictly positive.
    beta : array-like of shape (K, V)
        Topic-word distributions, every row sums to one.

    The dtype of ``beta`` (float32 or float64) is the precision every E-step
    and M-step computation is carried in.
    """

    def __init__(self, alpha, beta):
        beta = np.asarray(beta)
        if not np.issubdtype(beta.dtype, np.floating):
            beta = beta.astype(np.float64)
        self.beta = beta
        self.alpha = np.asarray(alpha, dtype=beta.dtype)

        assert self.beta.ndim == 2, "beta must be a (topics, words) matrix."
        assert self.alpha.shape == (self.beta.shape[0],), (
            f"alpha has shape {self.alpha.shape} but beta has {self.beta.shape[0]} topics."
        )
        assert np.all(self.alpha > 0), "The Dirichlet prior alpha must be strictly positive."

    @property
    def n_topics(self):
        return self.beta.shape[0]

    @property
    def n_words(self):
        return self.beta.shape[1]

    @property
    def dtype(self):
        return self.beta.dtype

    def frozen(self):
        """Read-only view of the same parameters, handed to the E-step."""
        return ModelParameters(_read_only(self.alpha), _read_only(self.beta))

    def copy(self):
        return ModelParameters(self.alpha.copy(), self.beta.copy())


class SupervisedModelParameters(ModelParameters):
    """ModelParameters plus the (K, C) classification parameters eta."""

    def __init__(self, alpha, beta, eta):
        super().__init__(alpha, beta)
        self.eta = np.asarray(eta, dtype=self.beta.dtype)

        assert self.eta.ndim == 2 and self.eta.shape[0] == self.n_topics, (
            f"eta must have shape ({self.n_topics}, n_classes), got {self.eta.shape}."
        )

    @property
    def n_classes(self):
        return self.eta.shape[1]

    def frozen(self):
        return SupervisedModelParameters(
            _read_only(self.alpha), _read_only(self.beta), _read_only(self.eta)
        )

    def copy(self):
        return SupervisedModelParameters(
            self.alpha.copy(), self.beta.copy(), self.eta.copy()
        )


class VariationalParameters:
    """Per-document variational posterior: Dirichlet gamma (K,) and multinomial phi (K, V)."""

    def __init__(self, gamma, phi):
        self.gamma = gamma
        self.phi = phi


class CorrespondenceVariationalParameters(VariationalParameters):
    """Adds lambda_ (V,), the posterior over which word occurrence generated the label."""

    def __init__(self, gamma, phi, lambda_):
        super().__init__(gamma, phi)
        self.lambda_ = lambda_
