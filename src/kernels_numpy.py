import numpy as np
from scipy.special import digamma

"""Numpy reference implementations of the three computational kernels used by
the E-steps.  Each function operates purely on NumPy ndarrays and is designed
to have the exact same call-signature across all back-ends (NumPy, Numba, …)
so that the E-step loop can dispatch to it without if/else logic.
"""

__all__ = [
    "dirichlet_expectation",
    "column_softmax",
    "compute_gamma",
]


# ---------------------------------------------------------------------------
# E[log θ] under the variational Dirichlet
# ---------------------------------------------------------------------------

def dirichlet_expectation(gamma: np.ndarray) -> np.ndarray:
    """Return ψ(γ_i) - ψ(Σ_j γ_j), the expected log topic proportions."""
    gamma = np.maximum(gamma, np.finfo(gamma.dtype).eps)

    return (digamma(gamma) - digamma(gamma.sum())).astype(gamma.dtype)


# ---------------------------------------------------------------------------
# φ responsibilities
# ---------------------------------------------------------------------------

def column_softmax(log_scores: np.ndarray) -> np.ndarray:
    """Exponentiate and normalise every column of a (K, V) log-score matrix.

    The column maximum is subtracted before exponentiating so that very
    negative log probabilities do not underflow to an all-zero column.
    """
    phi = np.exp(log_scores - log_scores.max(axis=0, keepdims=True))

    return phi / phi.sum(axis=0, keepdims=True)


# ---------------------------------------------------------------------------
# γ update
# ---------------------------------------------------------------------------

def compute_gamma(alpha: np.ndarray,
                  phi: np.ndarray,
                  counts: np.ndarray) -> np.ndarray:
    """γ_i = α_i + Σ_v X_v φ_iv."""
    return alpha + phi @ counts.astype(phi.dtype)
