"""Fitted-model data structures."""

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from netergm.model.terms import ModelSpec


@dataclass(frozen=True)
class MCMCSample:
    """Sufficient statistics recorded along one Markov chain.

    Uses frozen=True but omits slots=True since numpy arrays don't
    interact well with __slots__.
    """

    statistics: np.ndarray  # float array (n_draws, n_terms)
    theta: np.ndarray  # parameter vector the chain was run at
    burnin: int
    interval: int
    acceptance_rate: float

    @property
    def n_draws(self) -> int:
        return int(self.statistics.shape[0])


def significance_stars(p: float) -> str:
    if not np.isfinite(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    return ""


@dataclass(frozen=True)
class FittedModel:
    """Immutable result of one estimation run.

    ``sample`` holds the final chain of an MCMC-MLE fit and is None for
    dyad-independent models, whose maximum pseudo-likelihood estimate is
    the exact MLE.
    """

    spec: ModelSpec
    coefficients: np.ndarray
    standard_errors: np.ndarray
    z_values: np.ndarray
    p_values: np.ndarray
    covariance: np.ndarray  # inverse Fisher information of the coefficients
    observed_statistics: np.ndarray
    method: str  # "MPLE" or "MCMCMLE"
    iterations: int
    converged: bool
    n_dyads: int
    sample: MCMCSample | None = None
    log_likelihood: float | None = None
    trace: list[dict[str, Any]] = field(default_factory=list)
    seed: int | None = None

    @property
    def labels(self) -> list[str]:
        return self.spec.labels

    def coef(self) -> dict[str, float]:
        return dict(zip(self.labels, self.coefficients.tolist()))

    @property
    def aic(self) -> float | None:
        if self.log_likelihood is None:
            return None
        return 2 * len(self.spec) - 2 * self.log_likelihood

    @property
    def bic(self) -> float | None:
        if self.log_likelihood is None:
            return None
        return len(self.spec) * np.log(self.n_dyads) - 2 * self.log_likelihood

    def summary(self) -> pd.DataFrame:
        """Coefficient table with Wald z tests and significance codes."""
        return pd.DataFrame(
            {
                "estimate": self.coefficients,
                "std_error": self.standard_errors,
                "z_value": self.z_values,
                "p_value": self.p_values,
                "signif": [significance_stars(p) for p in self.p_values],
            },
            index=pd.Index(self.labels, name="term"),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (the chain itself is omitted)."""
        return {
            "formula": self.spec.formula,
            "method": self.method,
            "iterations": self.iterations,
            "converged": self.converged,
            "seed": self.seed,
            "log_likelihood": self.log_likelihood,
            "aic": self.aic,
            "bic": self.bic,
            "terms": [
                {
                    "term": label,
                    "estimate": float(est),
                    "std_error": float(se),
                    "z_value": float(z),
                    "p_value": float(p),
                    "observed": float(obs),
                }
                for label, est, se, z, p, obs in zip(
                    self.labels,
                    self.coefficients,
                    self.standard_errors,
                    self.z_values,
                    self.p_values,
                    self.observed_statistics,
                )
            ],
            "trace": self.trace,
        }
