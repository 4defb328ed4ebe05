"""Build an attributed directed graph from vertex and edge tables.

The vertex table holds one row per entity (id plus attribute columns such
as chamber, party, gender, followers_count); the edge table holds one
row per directed edge (source id, target id). Inconsistent inputs raise
FormatError, which aborts the run.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd
import scipy.sparse

from netergm.config.experiment import DataConfig
from netergm.graph.types import AttributedGraph

log = logging.getLogger(__name__)


class FormatError(Exception):
    """Raised when input tables are malformed or mutually inconsistent."""


def _read_table(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FormatError(f"Input table not found: {path}")
    sep = "\t" if path.suffix.lower() in (".tsv", ".tab") else ","
    try:
        return pd.read_csv(path, sep=sep)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise FormatError(f"Could not parse {path}: {e}") from e


def build_graph(
    vertex_table: pd.DataFrame,
    edge_table: pd.DataFrame,
    id_column: str = "id",
    source_column: str = "source",
    target_column: str = "target",
) -> AttributedGraph:
    """Construct an AttributedGraph from in-memory tables.

    Validation (cheapest first):
    1. Required columns present
    2. Vertex ids non-null and unique
    3. Edge endpoints non-null and declared in the vertex table

    Self-loops are dropped and duplicate edges collapsed, each with a
    warning, since the graph is unweighted and loop-free.

    Args:
        vertex_table: One row per vertex; ``id_column`` plus attributes.
        edge_table: One row per directed edge.
        id_column: Vertex id column name in ``vertex_table``.
        source_column: Edge source column name in ``edge_table``.
        target_column: Edge target column name in ``edge_table``.

    Returns:
        The attributed graph, vertices in vertex-table order.

    Raises:
        FormatError: On any of the validation failures above.
    """
    if id_column not in vertex_table.columns:
        raise FormatError(
            f"Vertex table missing id column {id_column!r}; "
            f"columns: {list(vertex_table.columns)}"
        )
    missing = [c for c in (source_column, target_column) if c not in edge_table.columns]
    if missing:
        raise FormatError(
            f"Edge table missing columns {missing}; "
            f"columns: {list(edge_table.columns)}"
        )

    ids = vertex_table[id_column]
    if ids.isna().any():
        raise FormatError(f"{int(ids.isna().sum())} vertices have no id")
    duplicated = ids[ids.duplicated()].unique().tolist()
    if duplicated:
        raise FormatError(f"Duplicate vertex ids: {duplicated[:10]}")

    attributes = vertex_table.set_index(id_column)
    index = attributes.index

    edges = edge_table[[source_column, target_column]]
    if edges.isna().any().any():
        raise FormatError(
            f"{int(edges.isna().any(axis=1).sum())} edges have a missing endpoint"
        )

    src = index.get_indexer(edges[source_column])
    tgt = index.get_indexer(edges[target_column])
    unknown_mask = (src < 0) | (tgt < 0)
    if unknown_mask.any():
        bad = edges[unknown_mask]
        unknown_ids = sorted(
            set(bad.loc[src[unknown_mask] < 0, source_column].tolist())
            | set(bad.loc[tgt[unknown_mask] < 0, target_column].tolist()),
            key=str,
        )
        raise FormatError(
            f"{int(unknown_mask.sum())} edges reference unknown vertex ids: "
            f"{unknown_ids[:10]}"
        )

    loops = src == tgt
    if loops.any():
        log.warning("Dropping %d self-loop edges", int(loops.sum()))
        src, tgt = src[~loops], tgt[~loops]

    n = len(index)
    adj = scipy.sparse.csr_matrix(
        (np.ones(len(src), dtype=np.int32), (src, tgt)), shape=(n, n)
    )
    # Duplicate (src, tgt) pairs are summed by the constructor
    n_duplicates = int(adj.sum()) - adj.nnz
    if n_duplicates:
        log.warning("Collapsing %d duplicate edges", n_duplicates)
        adj.data[:] = 1
    adj.sort_indices()

    return AttributedGraph(
        adjacency=adj,
        vertex_ids=index.to_numpy(dtype=object),
        attributes=attributes,
    )


def load_graph(
    vertices_path: str | Path,
    edges_path: str | Path,
    config: DataConfig | None = None,
) -> AttributedGraph:
    """Read vertex and edge tables from CSV/TSV files and build the graph.

    Args:
        vertices_path: Vertex attribute table.
        edges_path: Edge table.
        config: Column naming; defaults to ``DataConfig()``.

    Returns:
        The loaded AttributedGraph (all components).

    Raises:
        FormatError: If a file is missing, unparsable or inconsistent.
    """
    config = config or DataConfig()
    vertex_table = _read_table(vertices_path)
    edge_table = _read_table(edges_path)
    graph = build_graph(
        vertex_table,
        edge_table,
        id_column=config.id_column,
        source_column=config.source_column,
        target_column=config.target_column,
    )
    log.info(
        "Loaded graph from %s / %s: %d vertices, %d edges",
        vertices_path, edges_path, graph.n_vertices, graph.n_edges,
    )
    return graph
