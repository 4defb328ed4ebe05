"""Assortativity (homophily) coefficients for vertex attributes.

Categorical attributes use Newman's matching coefficient (proportion of
same-category edges normalized against chance); numeric attributes use the
Pearson correlation of source and target values across edges. Degree
assortativity is the numeric case with each vertex's own degree as the
attribute. All functions are pure in (graph, attribute).
"""

import logging
import warnings
from typing import Any

import networkx as nx
import numpy as np
import pandas as pd

from netergm.graph.types import AttributedGraph

log = logging.getLogger(__name__)


def _attributed_subgraph(graph: AttributedGraph, attribute: str) -> nx.DiGraph:
    """networkx view restricted to vertices with a non-missing attribute."""
    values = graph.attribute_array(attribute)
    keep = ~pd.isna(values)
    G = graph.to_networkx()
    if keep.all():
        return G
    dropped = int((~keep).sum())
    log.debug("Excluding %d vertices with missing %r", dropped, attribute)
    return G.subgraph(graph.vertex_ids[keep].tolist()).copy()


def _safe_coefficient(fn, *args, **kwargs) -> float:
    """Evaluate a networkx coefficient, mapping undefined cases to NaN."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", RuntimeWarning)
        try:
            value = fn(*args, **kwargs)
        except (ZeroDivisionError, ValueError, nx.NetworkXError):
            return float("nan")
    return float(value)


def categorical_assortativity(graph: AttributedGraph, attribute: str) -> float:
    """Matching assortativity of a categorical attribute, in [-1, 1].

    Returns NaN when undefined (no edges, or every edge endpoint shares a
    single category so the chance-matching term is 1).
    """
    G = _attributed_subgraph(graph, attribute)
    if G.number_of_edges() == 0:
        return float("nan")
    return _safe_coefficient(nx.attribute_assortativity_coefficient, G, attribute)


def numeric_assortativity(graph: AttributedGraph, attribute: str) -> float:
    """Pearson assortativity of a numeric attribute across edges, in [-1, 1]."""
    G = _attributed_subgraph(graph, attribute)
    if G.number_of_edges() == 0:
        return float("nan")
    return _safe_coefficient(nx.numeric_assortativity_coefficient, G, attribute)


def degree_assortativity(
    graph: AttributedGraph, x: str = "out", y: str = "in"
) -> float:
    """Degree assortativity: correlation of source ``x``-degree and target ``y``-degree."""
    if graph.n_edges == 0:
        return float("nan")
    return _safe_coefficient(
        nx.degree_assortativity_coefficient, graph.to_networkx(), x=x, y=y
    )


def mixing_matrix(graph: AttributedGraph, attribute: str) -> pd.DataFrame:
    """Edge counts between attribute categories (rows: source, columns: target)."""
    G = _attributed_subgraph(graph, attribute)
    categories = sorted(set(nx.get_node_attributes(G, attribute).values()), key=str)
    mapping = {c: i for i, c in enumerate(categories)}
    M = nx.attribute_mixing_matrix(G, attribute, mapping=mapping, normalized=False)
    return pd.DataFrame(
        np.asarray(M, dtype=np.int64), index=categories, columns=categories
    )


def assortativity_permutation_test(
    graph: AttributedGraph,
    attribute: str,
    n_permutations: int = 500,
    seed: int | np.random.Generator = 42,
    categorical: bool = True,
) -> dict[str, Any]:
    """Observed assortativity against a label-permutation null.

    Shuffles the attribute values across vertices (edges fixed) and
    recomputes the coefficient each time.

    Args:
        graph: Attributed graph.
        attribute: Attribute name.
        n_permutations: Number of shuffles.
        seed: Random seed or generator for reproducibility.
        categorical: Matching coefficient if True, Pearson if False.

    Returns:
        Dict with attribute, observed, null_mean, null_std, z_score,
        p_value (two-sided), n_permutations.
    """
    rng = np.random.default_rng(seed)
    coefficient = categorical_assortativity if categorical else numeric_assortativity
    observed = coefficient(graph, attribute)

    result: dict[str, Any] = {
        "attribute": attribute,
        "kind": "categorical" if categorical else "numeric",
        "observed": observed,
        "null_mean": float("nan"),
        "null_std": float("nan"),
        "z_score": float("nan"),
        "p_value": float("nan"),
        "n_permutations": 0,
    }
    if not np.isfinite(observed) or n_permutations == 0:
        return result

    values = graph.attributes[attribute].to_numpy()
    null = np.empty(n_permutations)
    for k in range(n_permutations):
        shuffled = graph.attributes.copy()
        shuffled[attribute] = rng.permutation(values)
        permuted = AttributedGraph(
            adjacency=graph.adjacency,
            vertex_ids=graph.vertex_ids,
            attributes=shuffled,
        )
        null[k] = coefficient(permuted, attribute)

    null = null[np.isfinite(null)]
    if null.size == 0:
        return result

    null_mean = float(null.mean())
    null_std = float(null.std(ddof=1)) if null.size > 1 else 0.0
    result.update(
        null_mean=null_mean,
        null_std=null_std,
        z_score=(observed - null_mean) / max(null_std, 1e-12),
        # Add-one Monte Carlo p-value: never exactly zero
        p_value=float(
            (1 + np.count_nonzero(np.abs(null - null_mean) >= abs(observed - null_mean)))
            / (1 + null.size)
        ),
        n_permutations=int(null.size),
    )
    return result


def run_assortativity_analysis(
    graph: AttributedGraph,
    categorical: tuple[str, ...] = (),
    numeric: tuple[str, ...] = (),
    include_degree: bool = True,
    n_permutations: int = 0,
    seed: int = 42,
) -> dict[str, Any]:
    """Assortativity coefficients for every configured attribute.

    Attributes absent from the vertex table are skipped with a warning.

    Returns:
        Dict with "categorical", "numeric" (attribute -> result dict) and,
        if requested, "degree" (out-in degree assortativity).
    """
    rng = np.random.default_rng(seed)
    out: dict[str, Any] = {"categorical": {}, "numeric": {}}

    for kind, names in (("categorical", categorical), ("numeric", numeric)):
        for name in names:
            if name not in graph.attributes.columns:
                log.warning("Skipping assortativity for missing attribute %r", name)
                continue
            res = assortativity_permutation_test(
                graph, name, n_permutations, rng, categorical=kind == "categorical"
            )
            log.info("Assortativity %s (%s): %.4f", name, kind, res["observed"])
            out[kind][name] = res

    if include_degree:
        out["degree"] = degree_assortativity(graph)
        log.info("Degree assortativity (out-in): %.4f", out["degree"])
    return out
