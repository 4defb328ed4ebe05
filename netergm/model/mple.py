"""Maximum pseudo-likelihood estimation (MPLE).

Treats every dyad as a logistic regression of its tie indicator on its
change statistics given the rest of the graph. For dyad-independent
models the pseudo-likelihood is the likelihood, so the MPLE is the exact
MLE; otherwise it serves as the starting point for MCMC-MLE.
"""

import logging
from dataclasses import dataclass

import numpy as np
import scipy.sparse
from scipy.optimize import minimize
from scipy.special import expit, log_expit

from netergm.model.terms import DyadFeatures

log = logging.getLogger(__name__)

# A logit beyond this means fitted tie probabilities below ~2e-9
_MAX_ABS_COEF = 20.0


@dataclass(frozen=True)
class MPLEResult:
    theta: np.ndarray
    covariance: np.ndarray  # inverse of the (pseudo-)Fisher information
    log_likelihood: float  # log pseudo-likelihood at theta
    success: bool
    message: str


def design_matrix(
    adjacency: scipy.sparse.spmatrix, features: DyadFeatures
) -> tuple[np.ndarray, np.ndarray]:
    """Change-statistic rows and tie indicators for all off-diagonal dyads.

    Returns:
        (X of shape (n(n-1), n_terms), y of shape (n(n-1),))
    """
    n = features.n
    A = scipy.sparse.csr_matrix(adjacency).toarray() != 0
    off = ~np.eye(n, dtype=bool)
    X = features.base[off].copy()
    if features.mutual_index is not None:
        X[:, features.mutual_index] = A.T[off]
    y = A[off].astype(np.float64)
    return X, y


def _fit_logistic(X: np.ndarray, y: np.ndarray, theta0: np.ndarray):
    """Newton trust-region fit of the logistic log-likelihood."""

    def nll(theta):
        eta = X @ theta
        return -(y * log_expit(eta) + (1.0 - y) * log_expit(-eta)).sum()

    def grad(theta):
        return X.T @ (expit(X @ theta) - y)

    def hess(theta):
        p = expit(X @ theta)
        return (X * (p * (1.0 - p))[:, None]).T @ X

    res = minimize(
        nll, theta0, jac=grad, hess=hess, method="trust-exact",
        options={"gtol": 1e-10, "maxiter": 500},
    )
    return res, hess(res.x)


def fit_mple(
    adjacency: scipy.sparse.spmatrix,
    features: DyadFeatures,
) -> MPLEResult:
    """Maximize the log pseudo-likelihood of ``adjacency`` under ``features``.

    Args:
        adjacency: Observed directed graph.
        features: Precomputed change statistics for the model.

    Returns:
        MPLEResult with coefficients, covariance and log pseudo-likelihood.
        ``success`` is False if the optimizer failed or the estimate is
        unbounded (complete separation, e.g. a nodematch term whose every
        edge matches).
    """
    X, y = design_matrix(adjacency, features)
    theta0 = np.zeros(features.n_terms)
    density = y.mean() if y.size else 0.0
    if 0.0 < density < 1.0 and features.spec.terms[0].name == "edges":
        theta0[0] = np.log(density / (1.0 - density))

    res, info = _fit_logistic(X, y, theta0)
    theta = np.asarray(res.x, dtype=np.float64)

    try:
        cov = np.linalg.inv(info)
    except np.linalg.LinAlgError:
        cov = np.full_like(info, np.nan)

    # trust-exact can stop on round-off once the gradient is negligible
    stationary = bool(res.success) or (
        np.linalg.norm(res.jac) <= 1e-6 * max(y.size, 1)
    )
    bounded = np.all(np.isfinite(theta)) and np.max(np.abs(theta)) < _MAX_ABS_COEF
    success = stationary and bounded and np.all(np.isfinite(np.diag(cov)))
    if not success:
        log.warning(
            "MPLE did not produce a finite estimate (%s); theta=%s",
            res.message, np.round(theta, 3),
        )
    return MPLEResult(
        theta=theta,
        covariance=cov,
        log_likelihood=float(-res.fun),
        success=success,
        message=str(res.message),
    )
