"""Descriptive structural summary of an attributed graph."""

from typing import Any

import numpy as np

from netergm.graph.components import weak_component_labels
from netergm.graph.types import AttributedGraph


def reciprocity(graph: AttributedGraph) -> float:
    """Fraction of directed edges whose reverse edge is also present."""
    if graph.n_edges == 0:
        return float("nan")
    A = graph.adjacency
    reciprocated = A.multiply(A.T).nnz
    return reciprocated / graph.n_edges


def graph_summary(graph: AttributedGraph) -> dict[str, Any]:
    """Basic structural summary of the graph."""
    n = graph.n_vertices
    n_dyads = n * (n - 1)
    degree = graph.in_degrees() + graph.out_degrees()
    n_components = int(weak_component_labels(graph)[0]) if n else 0
    return {
        "vertices": n,
        "edges": graph.n_edges,
        "density": graph.n_edges / n_dyads if n_dyads else 0.0,
        "reciprocity": reciprocity(graph),
        "weak_components": n_components,
        "isolates": int((degree == 0).sum()),
        "mean_in_degree": float(np.mean(graph.in_degrees())) if n else 0.0,
        "max_in_degree": int(graph.in_degrees().max()) if n else 0,
        "max_out_degree": int(graph.out_degrees().max()) if n else 0,
    }
