import numpy as np
from scipy.special import logsumexp


def _invert_dict(d):
    return {v: k for k, v in d.items()}


def safe_log(x):
    """Logarithm of a probability array, lower-bounded to avoid log(0)."""
    x = np.asarray(x)
    dtype = x.dtype if np.issubdtype(x.dtype, np.floating) else np.float64
    return np.log(np.maximum(x, np.finfo(dtype).tiny))


def normalize_rows(m):
    """Normalizes every row of a 2D array so that it sums to one.

    Rows summing to zero (e.g. a topic that received no sufficient statistics)
    become uniform so that the result is always row stochastic.
    """
    m = np.asarray(m)
    sums = m.sum(axis=1, keepdims=True)
    uniform = np.full_like(m, 1.0 / m.shape[1])

    return np.where(sums > 0, m / np.where(sums > 0, sums, 1), uniform)


def softmax(x, axis=0):
    return np.exp(x - logsumexp(x, axis=axis, keepdims=True))


def document_z_bar(phi, counts):
    # Expected topic proportions of the document's words
    n = counts.sum()
    if n == 0:
        return np.zeros(phi.shape[0], dtype=phi.dtype)

    return phi @ counts.astype(phi.dtype) / n
