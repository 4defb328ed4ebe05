"""Metropolis-Hastings edge-toggle sampler for ERGMs.

Each step proposes toggling one directed dyad and accepts with probability

    min(1, exp(+/- theta . delta(i, j)) * q_reverse / q_forward)

where delta is the change-statistic vector of adding i->j. Two proposals
are supported:

- "random": a uniformly chosen ordered dyad (symmetric, no correction)
- "tnt" (tie / no-tie): with probability 1/2 an existing edge is chosen
  for removal, otherwise a uniform dyad. Sparse graphs mix much faster
  because removals are not starved by the mostly-empty dyad space.

Runs are single-threaded and dominated by the per-step Python loop;
callers choose burn-in and thinning to trade time for mixing.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import scipy.sparse

from netergm.model.terms import DyadFeatures

log = logging.getLogger(__name__)

# Random numbers are drawn in blocks of this many steps
_BLOCK = 65_536


@dataclass(frozen=True)
class ChainResult:
    """Output of one chain: final graph plus thinned statistic draws."""

    adjacency: scipy.sparse.csr_matrix  # graph at the end of the chain
    statistics: np.ndarray  # (n_draws, n_terms) sufficient statistics
    edge_counts: np.ndarray  # (n_draws,) edge count at each draw
    graphs: list[scipy.sparse.csr_matrix] | None  # per-draw graphs if requested
    acceptance_rate: float
    n_steps: int


class _EdgeSet:
    """Edge set with O(1) membership, insertion, removal and uniform choice."""

    def __init__(self, n: int, rows: np.ndarray, cols: np.ndarray):
        self.n = n
        self.codes: list[int] = (rows.astype(np.int64) * n + cols).tolist()
        self.pos: dict[int, int] = {c: k for k, c in enumerate(self.codes)}

    def __len__(self) -> int:
        return len(self.codes)

    def __contains__(self, code: int) -> bool:
        return code in self.pos

    def add(self, code: int) -> None:
        self.pos[code] = len(self.codes)
        self.codes.append(code)

    def remove(self, code: int) -> None:
        k = self.pos.pop(code)
        last = self.codes.pop()
        if last != code:
            self.codes[k] = last
            self.pos[last] = k

    def to_csr(self) -> scipy.sparse.csr_matrix:
        codes = np.asarray(self.codes, dtype=np.int64)
        A = scipy.sparse.csr_matrix(
            (np.ones(codes.size, dtype=np.int32), (codes // self.n, codes % self.n)),
            shape=(self.n, self.n),
        )
        A.sort_indices()
        return A


def _log_proposal_ratio(adding: bool, n_edges: int, n_dyads: int, proposal: str) -> float:
    """log(q_reverse / q_forward) for toggling a dyad given the current edge count."""
    if proposal == "random":
        return 0.0

    def q_add(e: int) -> float:
        # Non-edges are only reachable through the uniform-dyad branch
        return (0.5 if e > 0 else 1.0) / n_dyads

    def q_remove(e: int) -> float:
        return 0.5 / e + 0.5 / n_dyads

    if adding:
        return math.log(q_remove(n_edges + 1)) - math.log(q_add(n_edges))
    return math.log(q_add(n_edges - 1)) - math.log(q_remove(n_edges))


def simulate_chain(
    adjacency: scipy.sparse.spmatrix,
    features: DyadFeatures,
    theta: np.ndarray,
    burnin: int,
    interval: int,
    n_draws: int,
    rng: np.random.Generator,
    proposal: str = "tnt",
    keep_graphs: bool = False,
) -> ChainResult:
    """Run a Markov chain from ``adjacency`` at parameter ``theta``.

    Records the sufficient statistics every ``interval`` steps after
    ``burnin`` steps, ``n_draws`` times.

    Args:
        adjacency: Starting graph (typically the observed graph).
        features: Precomputed change statistics for the model.
        theta: Parameter vector, one entry per term.
        burnin: Steps discarded before the first draw.
        interval: Steps between consecutive draws.
        n_draws: Number of draws to record.
        rng: numpy random Generator for reproducibility.
        proposal: "tnt" or "random".
        keep_graphs: Also return the graph at each draw.

    Returns:
        ChainResult with the statistic matrix and acceptance rate.
    """
    if proposal not in ("tnt", "random"):
        raise ValueError(f"Unknown proposal {proposal!r}")
    if burnin < 0:
        raise ValueError(f"burnin must be >= 0, got {burnin}")
    if interval < 1:
        raise ValueError(f"interval must be >= 1, got {interval}")
    if n_draws < 1:
        raise ValueError(f"n_draws must be >= 1, got {n_draws}")
    n = features.n
    if n < 2:
        raise ValueError("Need at least two vertices to sample graphs")
    theta = np.asarray(theta, dtype=np.float64)
    if theta.shape != (features.n_terms,):
        raise ValueError(
            f"theta has shape {theta.shape}, expected ({features.n_terms},)"
        )

    A = scipy.sparse.csr_matrix(adjacency)
    rows, cols = A.nonzero()
    edges = _EdgeSet(n, rows, cols)
    n_dyads = n * (n - 1)
    stats = features.statistics(A)

    # Per-dyad log-odds contribution of the dyad-independent terms
    base_score = features.base @ theta
    mutual_coef = (
        float(theta[features.mutual_index]) if features.mutual_index is not None else 0.0
    )
    base = features.base

    total_steps = burnin + interval * n_draws
    draws = np.empty((n_draws, features.n_terms))
    edge_counts = np.empty(n_draws, dtype=np.int64)
    graphs: list[scipy.sparse.csr_matrix] | None = [] if keep_graphs else None
    accepted = 0
    draw = 0
    next_record = burnin + interval

    log.debug(
        "Chain: n=%d, edges=%d, burnin=%d, interval=%d, draws=%d (%d steps)",
        n, len(edges), burnin, interval, n_draws, total_steps,
    )

    step = 0
    while step < total_steps:
        block = min(_BLOCK, total_steps - step)
        u_branch = rng.random(block)
        u_pick = rng.random(block)
        src = rng.integers(0, n, size=block)
        dst = rng.integers(0, n - 1, size=block)
        log_u = np.log(rng.random(block))

        for b in range(block):
            n_edges = len(edges)
            if proposal == "tnt" and n_edges > 0 and u_branch[b] < 0.5:
                code = edges.codes[int(u_pick[b] * n_edges)]
                i, j = divmod(code, n)
            else:
                i = int(src[b])
                j = int(dst[b])
                if j >= i:
                    j += 1
                code = i * n + j

            present = code in edges
            reverse = (j * n + i) in edges
            score = base_score[i, j] + (mutual_coef if reverse else 0.0)
            adding = not present
            log_ratio = (score if adding else -score) + _log_proposal_ratio(
                adding, n_edges, n_dyads, proposal
            )

            if log_ratio >= 0.0 or log_u[b] < log_ratio:
                accepted += 1
                change = base[i, j]
                if adding:
                    edges.add(code)
                    stats += change
                    if reverse and features.mutual_index is not None:
                        stats[features.mutual_index] += 1.0
                else:
                    edges.remove(code)
                    stats -= change
                    if reverse and features.mutual_index is not None:
                        stats[features.mutual_index] -= 1.0

            step += 1
            if step == next_record:
                draws[draw] = stats
                edge_counts[draw] = len(edges)
                if graphs is not None:
                    graphs.append(edges.to_csr())
                draw += 1
                next_record += interval

    return ChainResult(
        adjacency=edges.to_csr(),
        statistics=draws,
        edge_counts=edge_counts,
        graphs=graphs,
        acceptance_rate=accepted / total_steps if total_steps else 0.0,
        n_steps=total_steps,
    )
