"""Exponential random graph model terms, sampler and estimation."""

from netergm.model.errors import (
    DegenerateModelError,
    EstimationError,
    NonConvergenceError,
)
from netergm.model.estimation import fit_ergm
from netergm.model.mple import MPLEResult, design_matrix, fit_mple
from netergm.model.sampler import ChainResult, simulate_chain
from netergm.model.terms import (
    DyadFeatures,
    ModelSpec,
    Term,
    compute_statistics,
    edge_count,
    mutual_count,
    parse_formula,
)
from netergm.model.types import FittedModel, MCMCSample

__all__ = [
    "ChainResult",
    "DegenerateModelError",
    "DyadFeatures",
    "EstimationError",
    "FittedModel",
    "MCMCSample",
    "MPLEResult",
    "ModelSpec",
    "NonConvergenceError",
    "Term",
    "compute_statistics",
    "design_matrix",
    "edge_count",
    "fit_ergm",
    "fit_mple",
    "mutual_count",
    "parse_formula",
    "simulate_chain",
]
