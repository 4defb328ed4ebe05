"""Attributed directed graph container."""

from dataclasses import dataclass
from typing import Any

import networkx as nx
import numpy as np
import pandas as pd
import scipy.sparse


@dataclass(frozen=True)
class AttributedGraph:
    """Immutable directed graph with per-vertex attributes.

    Vertex ``k`` of the adjacency matrix corresponds to ``vertex_ids[k]``
    and to row ``k`` of ``attributes``. Uses frozen=True but omits
    slots=True since numpy/scipy/pandas objects don't interact well
    with __slots__.
    """

    adjacency: scipy.sparse.csr_matrix  # binary directed adjacency (n x n), zero diagonal
    vertex_ids: np.ndarray  # object array of length n, external vertex ids
    attributes: pd.DataFrame  # indexed by vertex id, one column per attribute

    @property
    def n_vertices(self) -> int:
        return int(self.adjacency.shape[0])

    @property
    def n_edges(self) -> int:
        return int(self.adjacency.nnz)

    @property
    def attribute_names(self) -> list[str]:
        return [str(c) for c in self.attributes.columns]

    def index_of(self, vertex_id: Any) -> int:
        """Matrix index of an external vertex id (KeyError if unknown)."""
        return int(self.attributes.index.get_loc(vertex_id))

    def attribute(self, vertex_id: Any, name: str) -> Any:
        """Attribute value of one vertex, looked up by external id."""
        return self.attributes.at[vertex_id, name]

    def attribute_array(self, name: str) -> np.ndarray:
        """Attribute column as a numpy array aligned with matrix indices."""
        if name not in self.attributes.columns:
            raise KeyError(
                f"Unknown vertex attribute {name!r}; "
                f"available: {self.attribute_names}"
            )
        return self.attributes[name].to_numpy()

    def in_degrees(self) -> np.ndarray:
        return np.asarray(self.adjacency.sum(axis=0)).ravel().astype(np.int64)

    def out_degrees(self) -> np.ndarray:
        return np.asarray(self.adjacency.sum(axis=1)).ravel().astype(np.int64)

    def with_adjacency(self, adjacency: scipy.sparse.csr_matrix) -> "AttributedGraph":
        """Same vertex set and attributes with a different edge set."""
        if adjacency.shape != self.adjacency.shape:
            raise ValueError(
                f"Adjacency shape {adjacency.shape} does not match "
                f"vertex count {self.n_vertices}"
            )
        return AttributedGraph(
            adjacency=scipy.sparse.csr_matrix(adjacency),
            vertex_ids=self.vertex_ids,
            attributes=self.attributes,
        )

    def to_networkx(self) -> nx.DiGraph:
        """networkx DiGraph keyed by external vertex id, attributes attached."""
        G = nx.DiGraph()
        for vid, row in zip(self.vertex_ids, self.attributes.to_dict("records")):
            G.add_node(vid, **row)
        rows, cols = self.adjacency.nonzero()
        G.add_edges_from(
            zip(self.vertex_ids[rows].tolist(), self.vertex_ids[cols].tolist())
        )
        return G
