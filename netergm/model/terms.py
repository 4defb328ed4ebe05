"""ERGM model terms, formula parsing and sufficient statistics.

Each term contributes one scalar sufficient statistic summed over the graph:

- edges:            number of directed edges
- mutual:           number of unordered pairs with edges in both directions
- nodematch(attr):  edges whose endpoints share the categorical value
- nodecov(attr):    sum over edges of x[source] + x[target]
- nodeocov(attr):   sum over edges of x[source]
- nodeicov(attr):   sum over edges of x[target]
- absdiff(attr):    sum over edges of |x[source] - x[target]|

All terms except mutual are dyad-independent: the change in their
statistic from toggling i->j depends only on (i, j), not on the rest of
the graph. DyadFeatures precomputes those changes once per graph.
"""

import re
from dataclasses import dataclass

import numpy as np
import pandas as pd
import scipy.sparse

from netergm.graph.loader import FormatError
from netergm.graph.types import AttributedGraph

STRUCTURAL_TERMS = ("edges", "mutual")
CATEGORICAL_TERMS = ("nodematch",)
NUMERIC_TERMS = ("nodecov", "nodeocov", "nodeicov", "absdiff")
KNOWN_TERMS = STRUCTURAL_TERMS + CATEGORICAL_TERMS + NUMERIC_TERMS

_TERM_RE = re.compile(r"^([a-z]+)\s*(?:\(\s*['\"]?([\w.]+)['\"]?\s*\))?$")


@dataclass(frozen=True, slots=True)
class Term:
    """One model term, optionally bound to a vertex attribute."""

    name: str
    attribute: str | None = None

    def __post_init__(self) -> None:
        if self.name not in KNOWN_TERMS:
            raise ValueError(
                f"Unknown term {self.name!r}; supported: {KNOWN_TERMS}"
            )
        needs_attribute = self.name not in STRUCTURAL_TERMS
        if needs_attribute and not self.attribute:
            raise ValueError(f"Term {self.name!r} requires an attribute")
        if not needs_attribute and self.attribute:
            raise ValueError(f"Term {self.name!r} takes no attribute")

    @property
    def label(self) -> str:
        return self.name if self.attribute is None else f"{self.name}.{self.attribute}"

    @property
    def dyad_independent(self) -> bool:
        return self.name != "mutual"


@dataclass(frozen=True, slots=True)
class ModelSpec:
    """Ordered list of terms; coefficient k belongs to terms[k]."""

    terms: tuple[Term, ...]

    def __post_init__(self) -> None:
        if not self.terms:
            raise ValueError("Model needs at least one term")
        labels = [t.label for t in self.terms]
        dupes = sorted({lab for lab in labels if labels.count(lab) > 1})
        if dupes:
            raise ValueError(f"Duplicate terms in model: {dupes}")

    def __len__(self) -> int:
        return len(self.terms)

    def __iter__(self):
        return iter(self.terms)

    @property
    def labels(self) -> list[str]:
        return [t.label for t in self.terms]

    @property
    def dyad_independent(self) -> bool:
        return all(t.dyad_independent for t in self.terms)

    @property
    def formula(self) -> str:
        return " + ".join(
            t.name if t.attribute is None else f"{t.name}({t.attribute})"
            for t in self.terms
        )


def parse_formula(formula: str) -> ModelSpec:
    """Parse "edges + mutual + nodematch(party)" into a ModelSpec.

    Raises:
        ValueError: Empty formula, malformed or unknown term.
    """
    parts = [p.strip() for p in formula.split("+")]
    if not formula.strip() or any(not p for p in parts):
        raise ValueError(f"Malformed formula: {formula!r}")
    terms = []
    for part in parts:
        m = _TERM_RE.match(part)
        if m is None:
            raise ValueError(f"Cannot parse term {part!r} in formula {formula!r}")
        terms.append(Term(name=m.group(1), attribute=m.group(2)))
    return ModelSpec(terms=tuple(terms))


def _numeric_covariate(graph: AttributedGraph, attribute: str) -> np.ndarray:
    values = pd.to_numeric(graph.attributes[attribute], errors="coerce").to_numpy(
        dtype=np.float64
    )
    if np.isnan(values).any():
        raise FormatError(
            f"Attribute {attribute!r} has {int(np.isnan(values).sum())} "
            f"missing or non-numeric values"
        )
    return values


def _require_attribute(graph: AttributedGraph, attribute: str) -> None:
    if attribute not in graph.attributes.columns:
        raise FormatError(
            f"Model references unknown vertex attribute {attribute!r}; "
            f"available: {graph.attribute_names}"
        )


def term_change_matrix(graph: AttributedGraph, term: Term) -> np.ndarray:
    """(n, n) change in ``term``'s statistic from adding edge i->j.

    For ``mutual`` the change depends on the reverse edge and the matrix
    is all zeros; callers add y[j, i] themselves.
    """
    n = graph.n_vertices
    if term.name in STRUCTURAL_TERMS:
        return np.ones((n, n)) if term.name == "edges" else np.zeros((n, n))

    _require_attribute(graph, term.attribute)
    if term.name == "nodematch":
        codes, _ = pd.factorize(graph.attributes[term.attribute])
        # Missing values (code -1) match nothing
        same = (codes[:, None] == codes[None, :]) & (codes[:, None] >= 0)
        return same.astype(np.float64)

    x = _numeric_covariate(graph, term.attribute)
    if term.name == "nodecov":
        return x[:, None] + x[None, :]
    if term.name == "nodeocov":
        return np.repeat(x[:, None], n, axis=1)
    if term.name == "nodeicov":
        return np.repeat(x[None, :], n, axis=0)
    return np.abs(x[:, None] - x[None, :])


class DyadFeatures:
    """Per-dyad change statistics of a model on a fixed vertex set.

    ``base[i, j]`` is the change-statistic vector for adding i->j, with the
    mutual entry left at zero; ``delta`` fills it in from the reverse edge.
    """

    def __init__(self, graph: AttributedGraph, spec: ModelSpec):
        self.spec = spec
        self.n = graph.n_vertices
        self.base = np.stack(
            [term_change_matrix(graph, t) for t in spec.terms], axis=-1
        )
        idx = np.arange(self.n)
        self.base[idx, idx, :] = 0.0
        mutual = [k for k, t in enumerate(spec.terms) if t.name == "mutual"]
        self.mutual_index: int | None = mutual[0] if mutual else None

    @property
    def n_terms(self) -> int:
        return len(self.spec)

    def delta(self, i: int, j: int, reverse_present: bool) -> np.ndarray:
        """Change-statistic vector for adding edge i->j."""
        d = self.base[i, j].copy()
        if self.mutual_index is not None and reverse_present:
            d[self.mutual_index] = 1.0
        return d

    def statistics(self, adjacency: scipy.sparse.spmatrix | np.ndarray) -> np.ndarray:
        """Sufficient-statistic vector g(y) of a graph on this vertex set."""
        A = scipy.sparse.csr_matrix(adjacency)
        rows, cols = A.nonzero()
        stats = self.base[rows, cols].sum(axis=0) if rows.size else np.zeros(self.n_terms)
        if self.mutual_index is not None:
            stats[self.mutual_index] = mutual_count(A)
        return np.asarray(stats, dtype=np.float64)


def edge_count(adjacency: scipy.sparse.spmatrix) -> int:
    """Number of directed edges."""
    return int(scipy.sparse.csr_matrix(adjacency).count_nonzero())


def mutual_count(adjacency: scipy.sparse.spmatrix) -> int:
    """Number of unordered vertex pairs connected in both directions."""
    A = scipy.sparse.csr_matrix(adjacency, dtype=np.int64)
    both = A.multiply(A.T)
    loops = int(np.count_nonzero(both.diagonal()))
    return (int(both.count_nonzero()) - loops) // 2


def compute_statistics(graph: AttributedGraph, spec: ModelSpec) -> dict[str, float]:
    """Observed sufficient statistics of ``graph`` keyed by term label."""
    stats = DyadFeatures(graph, spec).statistics(graph.adjacency)
    return dict(zip(spec.labels, stats.tolist()))
