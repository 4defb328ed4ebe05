"""Chain-mixing diagnostics for the final MCMC-MLE sample.

A converged fit should show (i) simulated statistics centred on the
observed ones, (ii) autocorrelation that dies out within a few lags, and
(iii) no drift between the start and end of the chain (Geweke z near 0).
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.stats import norm

from netergm.model.types import FittedModel, MCMCSample


def autocorrelation(x: np.ndarray, max_lag: int) -> np.ndarray:
    """Sample autocorrelation at lags 0..max_lag of a 1-D series.

    A constant series has autocorrelation 1 at lag 0 and NaN elsewhere.
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    max_lag = min(max_lag, n - 1)
    centred = x - x.mean()
    denom = np.dot(centred, centred)
    acf = np.full(max_lag + 1, np.nan)
    acf[0] = 1.0
    if denom == 0:
        return acf
    for k in range(1, max_lag + 1):
        acf[k] = np.dot(centred[:-k], centred[k:]) / denom
    return acf


def effective_sample_size(x: np.ndarray) -> float:
    """ESS = n / (1 + 2 * sum of autocorrelations).

    The sum runs over the initial positive sequence (lags until the first
    non-positive autocorrelation).
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    if n < 3 or np.var(x) == 0:
        return float(n)
    acf = autocorrelation(x, n - 1)
    total = 0.0
    for rho in acf[1:]:
        if not rho > 0:
            break
        total += rho
    return float(n / (1.0 + 2.0 * total))


def geweke_z(x: np.ndarray, first: float = 0.1, last: float = 0.5) -> float:
    """Geweke drift statistic comparing the first and last chain segments.

    z = (mean_first - mean_last) / sqrt(var_first / ess_first + var_last / ess_last)
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    a = x[: max(int(first * n), 2)]
    b = x[n - max(int(last * n), 2):]
    var = np.var(a, ddof=1) / effective_sample_size(a) + np.var(b, ddof=1) / effective_sample_size(b)
    if var == 0:
        return 0.0 if a.mean() == b.mean() else float("inf")
    return float((a.mean() - b.mean()) / np.sqrt(var))


@dataclass(frozen=True)
class MCMCDiagnostics:
    """Per-term mixing summary of one chain."""

    table: pd.DataFrame  # index: term
    autocorrelation: pd.DataFrame  # index: lag, columns: term
    acceptance_rate: float
    sample: MCMCSample

    @property
    def max_geweke_abs(self) -> float:
        return float(np.nanmax(np.abs(self.table["geweke_z"].to_numpy())))


def mcmc_diagnostics(fitted: FittedModel, max_lag: int = 10) -> MCMCDiagnostics:
    """Trace statistics and autocorrelation of the final MCMC sample.

    Args:
        fitted: Model fitted by MCMC-MLE.
        max_lag: Largest autocorrelation lag reported (in thinned draws).

    Returns:
        MCMCDiagnostics with a per-term table of mean, sd, observed value,
        t-ratio, lag-1 autocorrelation, effective sample size and Geweke
        z / p-value.

    Raises:
        ValueError: The model was fitted without a chain (dyad-independent
            MPLE fit).
    """
    if fitted.sample is None:
        raise ValueError(
            f"No MCMC sample: {fitted.spec.formula} was fitted by {fitted.method}"
        )
    sample = fitted.sample
    S = sample.statistics
    rows = []
    acfs = {}
    for k, label in enumerate(fitted.labels):
        series = S[:, k]
        acf = autocorrelation(series, max_lag)
        acfs[label] = acf
        sd = float(series.std(ddof=1))
        deviation = float(series.mean() - fitted.observed_statistics[k])
        z = geweke_z(series)
        rows.append({
            "term": label,
            "observed": float(fitted.observed_statistics[k]),
            "mean": float(series.mean()),
            "sd": sd,
            "deviation": deviation,
            "t_ratio": deviation / sd if sd > 0 else 0.0,
            "lag1_acf": float(acf[1]) if acf.size > 1 else float("nan"),
            "ess": effective_sample_size(series),
            "geweke_z": z,
            "geweke_p": float(2.0 * norm.sf(abs(z))),
        })
    table = pd.DataFrame(rows).set_index("term")
    lags = max(len(a) for a in acfs.values())
    acf_frame = pd.DataFrame(
        {label: np.pad(a, (0, lags - len(a)), constant_values=np.nan) for label, a in acfs.items()},
        index=pd.RangeIndex(lags, name="lag"),
    )
    return MCMCDiagnostics(
        table=table,
        autocorrelation=acf_frame,
        acceptance_rate=sample.acceptance_rate,
        sample=sample,
    )
