"""Weak-component extraction and the analysis-frame policy.

The estimator needs a connected analysis frame, so by default only the
single largest weakly-connected component is modelled. The policy is an
explicit configuration value and the discarded counts are reported.
"""

import logging
from typing import Any

import numpy as np
from scipy.sparse.csgraph import connected_components

from netergm.graph.types import AttributedGraph

log = logging.getLogger(__name__)


def weak_component_labels(graph: AttributedGraph) -> tuple[int, np.ndarray]:
    """Number of weak components and the component label of each vertex."""
    return connected_components(
        graph.adjacency, directed=True, connection="weak"
    )


def induced_subgraph(graph: AttributedGraph, keep: np.ndarray) -> AttributedGraph:
    """Subgraph on the vertices at matrix indices ``keep`` (order preserved).

    Attribute values of retained vertices are carried over unchanged.
    """
    keep = np.sort(np.asarray(keep, dtype=np.int64))
    sub = graph.adjacency[keep][:, keep].tocsr()
    sub.sort_indices()
    return AttributedGraph(
        adjacency=sub,
        vertex_ids=graph.vertex_ids[keep],
        attributes=graph.attributes.iloc[keep],
    )


def largest_weak_component(graph: AttributedGraph) -> AttributedGraph:
    """Extract the single largest weakly-connected component as a new graph.

    Ties between equally large components go to the one containing the
    lowest-index vertex.

    Args:
        graph: Any attributed graph (may be disconnected).

    Returns:
        New AttributedGraph restricted to the largest weak component.
    """
    if graph.n_vertices == 0:
        return graph
    n_components, labels = weak_component_labels(graph)
    if n_components == 1:
        return graph
    sizes = np.bincount(labels)
    # argmax returns the first maximum; labels are assigned in vertex order
    largest = int(np.argmax(sizes))
    return induced_subgraph(graph, np.flatnonzero(labels == largest))


def apply_component_policy(
    graph: AttributedGraph, policy: str
) -> tuple[AttributedGraph, dict[str, Any]]:
    """Restrict the graph to its analysis frame according to ``policy``.

    Args:
        graph: Loaded graph.
        policy: "largest_weak" (keep the largest weak component) or
            "all" (keep every vertex).

    Returns:
        (analysis graph, record of what was discarded).

    Raises:
        ValueError: Unknown policy.
    """
    n_components, _ = weak_component_labels(graph) if graph.n_vertices else (0, None)
    if policy == "all":
        frame = graph
    elif policy == "largest_weak":
        frame = largest_weak_component(graph)
    else:
        raise ValueError(f"Unknown component policy {policy!r}")

    record = {
        "policy": policy,
        "n_components": int(n_components),
        "vertices_kept": frame.n_vertices,
        "edges_kept": frame.n_edges,
        "vertices_discarded": graph.n_vertices - frame.n_vertices,
        "edges_discarded": graph.n_edges - frame.n_edges,
        "discarded_vertex_ids": sorted(
            set(graph.vertex_ids.tolist()) - set(frame.vertex_ids.tolist()), key=str
        ),
    }
    if record["vertices_discarded"]:
        log.warning(
            "Component policy %s discarded %d vertices and %d edges "
            "(%d weak components)",
            policy,
            record["vertices_discarded"],
            record["edges_discarded"],
            n_components,
        )
    return frame, record
