"""Attributed directed graph loading, component policy and summaries."""

from netergm.graph.components import (
    apply_component_policy,
    induced_subgraph,
    largest_weak_component,
    weak_component_labels,
)
from netergm.graph.loader import FormatError, build_graph, load_graph
from netergm.graph.summary import graph_summary, reciprocity
from netergm.graph.types import AttributedGraph

__all__ = [
    "AttributedGraph",
    "FormatError",
    "apply_component_policy",
    "build_graph",
    "graph_summary",
    "induced_subgraph",
    "largest_weak_component",
    "load_graph",
    "reciprocity",
    "weak_component_labels",
]
