"""ERGM estimation: MPLE for dyad-independent models, MCMC-MLE otherwise.

MCMC-MLE iterates Newton-Raphson steps on the log-likelihood, whose
gradient is (observed - E_theta[g(Y)]) and whose Hessian is
-Cov_theta[g(Y)]; both moments are estimated from a chain started at the
observed graph. Iteration stops once every term's t-ratio
|observed - simulated mean| / simulated sd is below the tolerance.
"""

import logging
from typing import Any

import numpy as np
from scipy.stats import norm

from netergm.config.experiment import MCMCConfig
from netergm.graph.types import AttributedGraph
from netergm.model.errors import DegenerateModelError, NonConvergenceError
from netergm.model.mple import fit_mple
from netergm.model.sampler import simulate_chain
from netergm.model.terms import DyadFeatures, ModelSpec, parse_formula
from netergm.model.types import FittedModel, MCMCSample

log = logging.getLogger(__name__)

# Share of draws at the empty or complete graph beyond which a chain has collapsed
_MAX_BOUNDARY_FRACTION = 0.5


def _wald(theta: np.ndarray, cov: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Standard errors, z values and two-sided p-values."""
    with np.errstate(invalid="ignore", divide="ignore"):
        se = np.sqrt(np.diag(cov))
        z = theta / se
    p = 2.0 * norm.sf(np.abs(z))
    return se, z, p


def _check_degenerate(
    edge_counts: np.ndarray,
    n_dyads: int,
    trace: list[dict[str, Any]],
) -> None:
    """Raise if the chain is pinned at the empty or complete graph.

    A sparse graph's chain may visit the empty graph now and then; only a
    chain that spends most of its draws at a boundary (or its whole second
    half) has collapsed.
    """
    if edge_counts.size == 0:
        return
    tail = edge_counts[edge_counts.size // 2:]
    for label, boundary in (("empty", 0), ("complete", n_dyads)):
        at_boundary = edge_counts == boundary
        if at_boundary.mean() > _MAX_BOUNDARY_FRACTION or np.all(tail == boundary):
            raise DegenerateModelError(
                f"Chain collapsed to the {label} graph ({at_boundary.mean():.0%} "
                f"of draws, edge counts {edge_counts.min()}..{edge_counts.max()} "
                f"of {n_dyads} dyads); the model is degenerate for this graph",
                trace=trace,
            )


def _fit_mcmcmle(
    graph: AttributedGraph,
    features: DyadFeatures,
    observed: np.ndarray,
    theta0: np.ndarray,
    config: MCMCConfig,
    rng: np.random.Generator,
) -> tuple[np.ndarray, np.ndarray, MCMCSample, int, list[dict[str, Any]]]:
    """Newton-Raphson MCMC-MLE loop.

    Returns:
        (theta, covariance of theta, final MCMCSample, iterations, trace)

    Raises:
        DegenerateModelError: Chain collapses to the empty/complete graph, a
            statistic is frozen away from its observed value, or theta
            becomes non-finite.
        NonConvergenceError: max_iterations exhausted.
    """
    n_dyads = features.n * (features.n - 1)
    theta = theta0.copy()
    trace: list[dict[str, Any]] = []
    labels = features.spec.labels
    sample: MCMCSample | None = None

    log.info(
        "MCMC-MLE: %d terms, up to %d iterations of %d steps each",
        len(labels), config.max_iterations,
        config.burnin + config.interval * config.sample_size,
    )

    for iteration in range(1, config.max_iterations + 1):
        chain = simulate_chain(
            graph.adjacency,
            features,
            theta,
            burnin=config.burnin,
            interval=config.interval,
            n_draws=config.sample_size,
            rng=rng,
            proposal=config.proposal,
        )
        sample = MCMCSample(
            statistics=chain.statistics,
            theta=theta.copy(),
            burnin=config.burnin,
            interval=config.interval,
            acceptance_rate=chain.acceptance_rate,
        )
        mean = chain.statistics.mean(axis=0)
        cov = np.atleast_2d(np.cov(chain.statistics, rowvar=False))
        sd = np.sqrt(np.diag(cov))
        diff = observed - mean
        with np.errstate(invalid="ignore", divide="ignore"):
            t_ratio = np.where(sd > 0, diff / sd, np.where(diff == 0, 0.0, np.inf))

        entry = {
            "iteration": iteration,
            "theta": theta.tolist(),
            "simulated_mean": mean.tolist(),
            "t_ratio": t_ratio.tolist(),
            "acceptance_rate": chain.acceptance_rate,
        }
        trace.append(entry)
        log.debug(
            "Iteration %d: theta=%s max|t|=%.3f accept=%.3f",
            iteration, np.round(theta, 4), np.max(np.abs(t_ratio)),
            chain.acceptance_rate,
        )

        _check_degenerate(chain.edge_counts, n_dyads, trace)
        frozen = [labels[k] for k in np.flatnonzero(~np.isfinite(t_ratio))]
        if frozen:
            raise DegenerateModelError(
                f"Statistics {frozen} never varied in the chain but differ "
                f"from their observed values",
                trace=trace,
            )

        if np.max(np.abs(t_ratio)) < config.tolerance:
            info = cov + config.ridge * np.eye(len(theta))
            try:
                theta_cov = np.linalg.inv(info)
            except np.linalg.LinAlgError:
                theta_cov = np.linalg.pinv(info)
            log.info(
                "MCMC-MLE converged after %d iterations (max|t|=%.3f)",
                iteration, np.max(np.abs(t_ratio)),
            )
            return theta, theta_cov, sample, iteration, trace

        try:
            step = np.linalg.solve(cov + config.ridge * np.eye(len(theta)), diff)
        except np.linalg.LinAlgError:
            step = np.linalg.lstsq(cov, diff, rcond=None)[0]
        theta = theta + config.step_length * step
        if not np.all(np.isfinite(theta)):
            raise DegenerateModelError(
                f"Parameter update became non-finite at iteration {iteration}",
                trace=trace,
            )

    log.warning(
        "MCMC-MLE did not converge in %d iterations (last max|t|=%.3f)",
        config.max_iterations, np.max(np.abs(trace[-1]["t_ratio"])),
    )
    raise NonConvergenceError(
        f"MCMC-MLE did not converge within {config.max_iterations} iterations; "
        f"retry with more iterations, a longer burn-in or wider interval",
        trace=trace,
        last_sample=sample,
    )


def fit_ergm(
    graph: AttributedGraph,
    spec: ModelSpec | str,
    config: MCMCConfig | None = None,
    seed: int = 42,
) -> FittedModel:
    """Fit an ERGM to ``graph``.

    Dyad-independent models (no ``mutual`` term) are fitted by
    maximum pseudo-likelihood, which is the exact MLE for them; SEs come
    from the inverse Fisher information and the log-likelihood is exact.
    Other models start from the MPLE and are refined by MCMC-MLE.

    Args:
        graph: Observed attributed graph.
        spec: ModelSpec or formula string.
        config: MCMC settings; defaults to ``MCMCConfig()``.
        seed: Seed for the chain's random generator.

    Returns:
        Immutable FittedModel.

    Raises:
        ValueError: Graph with fewer than two vertices.
        FormatError: Model references a missing or non-numeric attribute.
        DegenerateModelError: Unbounded MPLE or degenerate chain.
        NonConvergenceError: Iteration budget exhausted.
    """
    if isinstance(spec, str):
        spec = parse_formula(spec)
    config = config or MCMCConfig()
    if graph.n_vertices < 2:
        raise ValueError("Need at least two vertices to fit an ERGM")

    n_dyads = graph.n_vertices * (graph.n_vertices - 1)
    if graph.n_edges in (0, n_dyads):
        raise DegenerateModelError(
            f"Observed graph is {'empty' if graph.n_edges == 0 else 'complete'}; "
            f"no finite estimate exists"
        )
    features = DyadFeatures(graph, spec)
    observed = features.statistics(graph.adjacency)
    log.info(
        "Fitting %s on %d vertices, %d edges; observed=%s",
        spec.formula, graph.n_vertices, graph.n_edges,
        dict(zip(spec.labels, np.round(observed, 3).tolist())),
    )

    mple = fit_mple(graph.adjacency, features)
    if not mple.success:
        raise DegenerateModelError(
            f"Maximum pseudo-likelihood estimate is unbounded or undefined "
            f"({mple.message}); some statistic is at the edge of its range"
        )

    if spec.dyad_independent:
        se, z, p = _wald(mple.theta, mple.covariance)
        return FittedModel(
            spec=spec,
            coefficients=mple.theta,
            standard_errors=se,
            z_values=z,
            p_values=p,
            covariance=mple.covariance,
            observed_statistics=observed,
            method="MPLE",
            iterations=0,
            converged=True,
            n_dyads=n_dyads,
            sample=None,
            log_likelihood=mple.log_likelihood,
            seed=seed,
        )

    rng = np.random.default_rng(seed)
    theta, theta_cov, sample, iterations, trace = _fit_mcmcmle(
        graph, features, observed, mple.theta, config, rng
    )
    se, z, p = _wald(theta, theta_cov)
    return FittedModel(
        spec=spec,
        coefficients=theta,
        standard_errors=se,
        z_values=z,
        p_values=p,
        covariance=theta_cov,
        observed_statistics=observed,
        method="MCMCMLE",
        iterations=iterations,
        converged=True,
        n_dyads=n_dyads,
        sample=sample,
        log_likelihood=None,
        trace=trace,
        seed=seed,
    )
