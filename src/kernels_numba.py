import sys

# Numba backend unsupported on Windows (native llvmlite/Numba crashes).
if sys.platform.startswith(("win", "cygwin")):
    raise ImportError("Numba backend is not supported on Windows.")

from numba import njit
import numpy as np

"""Numba-accelerated computational kernels.

These have the same public API as `kernels_numpy.py` but are compiled with
Numba's `njit`.  scipy.special is not available inside compiled code, so the
digamma function is evaluated with the usual recurrence + asymptotic series.
"""

__all__ = [
    "dirichlet_expectation",
    "column_softmax",
    "compute_gamma",
]


@njit
def _digamma(x):
    """ψ(x) for x > 0, accurate to ~1e-12 in double precision."""
    result = 0.0
    # Shift the argument until the asymptotic expansion is accurate
    while x < 6.0:
        result -= 1.0 / x
        x += 1.0
    f = 1.0 / (x * x)
    tail = f * (-1.0 / 12 + f * (1.0 / 120 + f * (-1.0 / 252 + f * (1.0 / 240 + f * (-1.0 / 132)))))

    return result + np.log(x) - 0.5 / x + tail


@njit
def _dirichlet_expectation(gamma, eps):
    K = gamma.shape[0]
    total = 0.0
    for k in range(K):
        total += max(gamma[k], eps)
    psi_total = _digamma(total)

    out = np.empty_like(gamma)
    for k in range(K):
        out[k] = _digamma(max(gamma[k], eps)) - psi_total

    return out


def dirichlet_expectation(gamma):
    """Numba version of dirichlet_expectation."""
    # Same lower bound as the numpy kernel, machine epsilon of gamma's dtype
    return _dirichlet_expectation(gamma, gamma.dtype.type(np.finfo(gamma.dtype).eps))


@njit
def column_softmax(log_scores):
    """Numba version of column_softmax."""
    K, V = log_scores.shape
    phi = np.empty_like(log_scores)

    for v in range(V):
        m = log_scores[0, v]
        for k in range(1, K):
            if log_scores[k, v] > m:
                m = log_scores[k, v]
        s = 0.0
        for k in range(K):
            phi[k, v] = np.exp(log_scores[k, v] - m)
            s += phi[k, v]
        for k in range(K):
            phi[k, v] /= s

    return phi


@njit
def compute_gamma(alpha, phi, counts):
    """Numba version of compute_gamma."""
    K, V = phi.shape
    gamma = alpha.copy()

    for v in range(V):
        x = counts[v]
        if x == 0:
            continue
        for k in range(K):
            gamma[k] += x * phi[k, v]

    return gamma
