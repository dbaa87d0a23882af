import numpy as np
from scipy.special import digamma, gammaln, logsumexp

from helpers import document_z_bar, safe_log

"""Per-document evidence lower bounds (ELBO) for every E-step variant.

Every function returns a python float.  Logarithms of probabilities are
always lower-bounded (``safe_log``) and the entropy terms use the convention
0 · log 0 = 0, so that no -inf or NaN can leak out of a valid input.
"""


def _expected_log_theta(gamma):
    return digamma(gamma) - digamma(gamma.sum())


def _xlogx(x):
    return np.where(x > 0, x * safe_log(x), 0)


def compute_unsupervised_likelihood(counts, alpha, beta, phi, gamma):
    """ELBO of the classic LDA model for one document.

    L = E_q[log p(θ|α)] + E_q[log p(z|θ)] + E_q[log p(w|z,β)]
        - E_q[log q(θ|γ)] - E_q[log q(z|φ)]
    """
    counts = counts.astype(np.float64)
    alpha = alpha.astype(np.float64)
    gamma = gamma.astype(np.float64)
    phi = phi.astype(np.float64)
    e_log_theta = _expected_log_theta(gamma)

    # E_q[log p(θ|α)]
    likelihood = gammaln(alpha.sum()) - gammaln(alpha).sum()
    likelihood += ((alpha - 1) * e_log_theta).sum()

    # -E_q[log q(θ|γ)]
    likelihood += -gammaln(gamma.sum()) + gammaln(gamma).sum()
    likelihood -= ((gamma - 1) * e_log_theta).sum()

    # E_q[log p(z|θ)] + E_q[log p(w|z,β)] - E_q[log q(z|φ)]
    words = (
        phi * (e_log_theta[:, np.newaxis] + safe_log(beta.astype(np.float64)))
        - _xlogx(phi)
    )
    likelihood += (words * counts[np.newaxis, :]).sum()

    return float(likelihood)


def _eta_prior(eta, mu, portion):
    # Dirichlet(mu) prior over the rows of eta, a corpus level term split evenly
    return (mu - 1) * safe_log(eta.astype(np.float64)).sum() * portion


def compute_supervised_multinomial_likelihood(counts, y, alpha, beta, eta, phi,
                                              gamma, prior_y, mu, portion):
    """ELBO of the per-word multinomial supervised model.

    Every word occurrence draws the document's class from eta[z_n]; the
    class prior correction removes the N - 1 extra draws of the class and the
    eta prior is weighted by ``portion`` (1 / corpus size).
    """
    likelihood = compute_unsupervised_likelihood(counts, alpha, beta, phi, gamma)

    phi_scaled_sum = phi.astype(np.float64) @ counts.astype(np.float64)
    likelihood += phi_scaled_sum @ safe_log(eta[:, y].astype(np.float64))
    likelihood -= (counts.sum() - 1) * safe_log(prior_y)
    likelihood += _eta_prior(eta, mu, portion)

    return float(likelihood)


def compute_supervised_correspondence_likelihood(counts, y, alpha, beta, eta,
                                                 phi, gamma, lambda_, mu, portion):
    """ELBO of the correspondence model, where one uniformly chosen word
    occurrence generates the class.

    The extra terms are E_q[log p(y|z,m,η)] + E_q[log p(m)] - E_q[log q(m|λ)].
    """
    likelihood = compute_unsupervised_likelihood(counts, alpha, beta, phi, gamma)

    counts = counts.astype(np.float64)
    lambda_ = lambda_.astype(np.float64)
    n = counts.sum()
    if n == 0:
        return float(likelihood + _eta_prior(eta, mu, portion))

    log_eta_y = safe_log(eta[:, y].astype(np.float64))
    likelihood += lambda_ @ (phi.astype(np.float64).T @ log_eta_y)

    # Entropy of the label-word assignment and the uniform prior over the N words
    present = counts > 0
    likelihood -= (
        _xlogx(lambda_[present]) - lambda_[present] * np.log(counts[present])
    ).sum()
    likelihood -= np.log(n)
    likelihood += _eta_prior(eta, mu, portion)

    return float(likelihood)


def compute_fast_supervised_likelihood(counts, y, alpha, beta, eta, phi, gamma):
    """ELBO of the softmax supervised model with the first order Taylor
    approximation of E_q[log Σ_c exp(η_c·z̄)] around E_q[z̄]."""
    likelihood = compute_unsupervised_likelihood(counts, alpha, beta, phi, gamma)

    z_bar = document_z_bar(phi.astype(np.float64), counts)
    scores = eta.astype(np.float64).T @ z_bar
    likelihood += scores[y] - logsumexp(scores)

    return float(likelihood)
