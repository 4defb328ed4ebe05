"""Goodness of fit: simulated vs observed structural statistics.

For each statistic (in-degree distribution, out-degree distribution,
model sufficient statistics) the observed value is placed within the
distribution of the same statistic over graphs simulated from the fit.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
import scipy.sparse

from netergm.graph.types import AttributedGraph
from netergm.diagnostics.simulation import simulate_graphs
from netergm.model.terms import DyadFeatures
from netergm.model.types import FittedModel

log = logging.getLogger(__name__)


def degree_distribution(
    adjacency: scipy.sparse.spmatrix, mode: str, max_degree: int
) -> np.ndarray:
    """Number of vertices with in- or out-degree k, for k = 0..max_degree.

    Degrees above ``max_degree`` are pooled into the last bin.
    """
    axis = 0 if mode == "in" else 1
    degrees = np.asarray(scipy.sparse.csr_matrix(adjacency).sum(axis=axis)).ravel()
    degrees = np.minimum(degrees.astype(np.int64), max_degree)
    return np.bincount(degrees, minlength=max_degree + 1)


def _summarize(observed: np.ndarray, simulated: np.ndarray, index: pd.Index) -> pd.DataFrame:
    """Per-entry envelope and two-sided Monte Carlo p-value."""
    p_low = (simulated <= observed).mean(axis=0)
    p_high = (simulated >= observed).mean(axis=0)
    return pd.DataFrame(
        {
            "observed": observed,
            "min": simulated.min(axis=0),
            "lower": np.quantile(simulated, 0.025, axis=0),
            "mean": simulated.mean(axis=0),
            "upper": np.quantile(simulated, 0.975, axis=0),
            "max": simulated.max(axis=0),
            "mc_pvalue": np.minimum(1.0, 2.0 * np.minimum(p_low, p_high)),
        },
        index=index,
    )


@dataclass(frozen=True)
class GOFResult:
    """Observed values, simulated draws and summary table per statistic."""

    observed: dict[str, np.ndarray]
    simulated: dict[str, np.ndarray]  # statistic -> (n_sims, n_entries)
    tables: dict[str, pd.DataFrame]
    n_sims: int

    def to_dict(self) -> dict:
        return {
            "n_sims": self.n_sims,
            "statistics": {
                name: table.reset_index().to_dict(orient="records")
                for name, table in self.tables.items()
            },
        }


def goodness_of_fit(
    fitted: FittedModel,
    graph: AttributedGraph,
    n_sims: int = 100,
    statistics: tuple[str, ...] = ("idegree", "odegree", "model"),
    max_degree: int | None = None,
    burnin: int = 20_000,
    interval: int = 200,
    seed: int = 0,
    proposal: str = "tnt",
) -> GOFResult:
    """Compare statistics of simulated graphs against the observed graph.

    Args:
        fitted: Fitted model (not modified).
        graph: Observed graph the model was fitted to.
        n_sims: Number of simulated graphs.
        statistics: Any of "idegree", "odegree", "model".
        max_degree: Degree bins 0..max_degree; None uses the largest degree
            seen in the observed or any simulated graph.
        burnin, interval, seed, proposal: Passed to ``simulate_graphs``.

    Returns:
        GOFResult keyed by statistic name.
    """
    unknown = set(statistics) - {"idegree", "odegree", "model"}
    if unknown:
        raise ValueError(f"Unknown GOF statistics: {sorted(unknown)}")

    sims = simulate_graphs(
        fitted, graph, n_sims,
        burnin=burnin, interval=interval, seed=seed, proposal=proposal,
    )

    if max_degree is None:
        all_graphs = [graph.adjacency, *sims.graphs]
        max_degree = int(max(
            max(
                np.asarray(A.sum(axis=0)).max(initial=0),
                np.asarray(A.sum(axis=1)).max(initial=0),
            )
            for A in all_graphs
        ))

    observed: dict[str, np.ndarray] = {}
    simulated: dict[str, np.ndarray] = {}
    tables: dict[str, pd.DataFrame] = {}

    for name in statistics:
        if name == "model":
            obs = DyadFeatures(graph, fitted.spec).statistics(graph.adjacency)
            sim = sims.statistics
            index = pd.Index(fitted.labels, name="term")
        else:
            mode = "in" if name == "idegree" else "out"
            obs = degree_distribution(graph.adjacency, mode, max_degree)
            sim = np.stack(
                [degree_distribution(A, mode, max_degree) for A in sims.graphs]
            )
            index = pd.RangeIndex(max_degree + 1, name="degree")
        observed[name] = obs
        simulated[name] = sim
        tables[name] = _summarize(obs, sim, index)
        worst = tables[name]["mc_pvalue"].min()
        log.info("GOF %s: smallest Monte Carlo p-value %.3f", name, worst)

    return GOFResult(
        observed=observed, simulated=simulated, tables=tables, n_sims=n_sims
    )
