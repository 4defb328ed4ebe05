"""Convergence diagnostics, simulation and goodness of fit for fitted ERGMs."""

from netergm.diagnostics.gof import GOFResult, degree_distribution, goodness_of_fit
from netergm.diagnostics.mcmc import (
    MCMCDiagnostics,
    autocorrelation,
    effective_sample_size,
    geweke_z,
    mcmc_diagnostics,
)
from netergm.diagnostics.simulation import SimulationResult, simulate_graphs

__all__ = [
    "GOFResult",
    "MCMCDiagnostics",
    "SimulationResult",
    "autocorrelation",
    "degree_distribution",
    "effective_sample_size",
    "geweke_z",
    "goodness_of_fit",
    "mcmc_diagnostics",
    "simulate_graphs",
]
