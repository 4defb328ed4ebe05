"""Descriptive homophily analysis ahead of model fitting."""

from netergm.analysis.assortativity import (
    assortativity_permutation_test,
    categorical_assortativity,
    degree_assortativity,
    mixing_matrix,
    numeric_assortativity,
    run_assortativity_analysis,
)

__all__ = [
    "assortativity_permutation_test",
    "categorical_assortativity",
    "degree_assortativity",
    "mixing_matrix",
    "numeric_assortativity",
    "run_assortativity_analysis",
]
