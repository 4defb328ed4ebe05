"""Shared fixtures: small synthetic follow networks."""

import numpy as np
import pandas as pd
import pytest

from netergm.config import MCMCConfig
from netergm.graph import AttributedGraph, build_graph
from netergm.model import fit_ergm


def make_tables(
    n: int = 15,
    seed: int = 0,
    p_same: float = 0.3,
    p_diff: float = 0.08,
    p_reciprocate: float = 0.5,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Vertex and edge tables for a homophilous legislature-like network.

    Edges within a party are more likely than across; each edge is
    reciprocated with probability ``p_reciprocate``.
    """
    rng = np.random.default_rng(seed)
    vertices = pd.DataFrame({
        "id": [f"v{i:02d}" for i in range(n)],
        "chamber": ["house" if i % 3 else "senate" for i in range(n)],
        "party": ["D" if i % 2 else "R" for i in range(n)],
        "gender": ["F" if i % 5 in (0, 1) else "M" for i in range(n)],
        "followers_count": rng.integers(100, 5000, size=n),
    })
    party = vertices["party"].to_numpy()
    edges = set()
    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            p = p_same if party[i] == party[j] else p_diff
            if rng.random() < p:
                edges.add((i, j))
                if rng.random() < p_reciprocate:
                    edges.add((j, i))
    ids = vertices["id"].to_numpy()
    edge_table = pd.DataFrame(
        sorted((ids[i], ids[j]) for i, j in edges), columns=["source", "target"]
    )
    return vertices, edge_table


def make_graph(**kwargs) -> AttributedGraph:
    return build_graph(*make_tables(**kwargs))


@pytest.fixture
def small_graph() -> AttributedGraph:
    return make_graph()


@pytest.fixture
def tiny_graph() -> AttributedGraph:
    """Four vertices: a reciprocated pair, a one-way edge and an isolate.

    a <-> b, b -> c, d isolated.
    """
    vertices = pd.DataFrame({
        "id": ["a", "b", "c", "d"],
        "party": ["D", "D", "R", "R"],
        "followers_count": [10.0, 20.0, 40.0, 80.0],
    })
    edges = pd.DataFrame({
        "source": ["a", "b", "b"],
        "target": ["b", "a", "c"],
    })
    return build_graph(vertices, edges)


# Short chains: enough for a 15-vertex graph to converge in a few iterations
TEST_MCMC = MCMCConfig(
    burnin=2000,
    interval=100,
    sample_size=500,
    max_iterations=30,
    tolerance=0.2,
)


@pytest.fixture(scope="session")
def mcmc_fit():
    """A dyad-dependent model fitted by MCMC-MLE, shared across modules."""
    graph = make_graph()
    fitted = fit_ergm(graph, "edges + mutual + nodematch(party)", TEST_MCMC, seed=1)
    return graph, fitted


@pytest.fixture(scope="session")
def mple_fit():
    """A dyad-independent model, whose MPLE is the exact MLE."""
    graph = make_graph()
    return graph, fit_ergm(graph, "edges + nodematch(party)", seed=1)
