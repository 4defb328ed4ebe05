"""Tests for chain diagnostics, graph simulation and goodness of fit."""

import numpy as np
import pytest
import scipy.sparse

from netergm.diagnostics import (
    GOFResult,
    autocorrelation,
    degree_distribution,
    effective_sample_size,
    geweke_z,
    goodness_of_fit,
    mcmc_diagnostics,
    simulate_graphs,
)
from netergm.model import DyadFeatures


def _ar1(phi, n, seed):
    rng = np.random.default_rng(seed)
    x = np.empty(n)
    x[0] = rng.normal()
    for t in range(1, n):
        x[t] = phi * x[t - 1] + rng.normal()
    return x


class TestChainStatistics:
    """Autocorrelation, ESS and Geweke on series with known behavior."""

    def test_autocorrelation_lag_zero(self):
        acf = autocorrelation(np.random.default_rng(0).normal(size=200), 5)
        assert acf.shape == (6,)
        assert acf[0] == 1.0

    def test_autocorrelation_ar1(self):
        acf = autocorrelation(_ar1(0.9, 5000, seed=1), 2)
        assert acf[1] == pytest.approx(0.9, abs=0.05)
        assert acf[2] == pytest.approx(0.81, abs=0.08)

    def test_autocorrelation_constant_series(self):
        acf = autocorrelation(np.full(50, 3.0), 3)
        assert acf[0] == 1.0
        assert np.all(np.isnan(acf[1:]))

    def test_max_lag_clipped_to_length(self):
        assert autocorrelation(np.arange(4.0), 10).shape == (4,)

    def test_ess_independent_draws(self):
        x = np.random.default_rng(2).normal(size=2000)
        assert effective_sample_size(x) > 0.7 * x.size

    def test_ess_correlated_draws(self):
        x = _ar1(0.9, 5000, seed=3)
        assert effective_sample_size(x) < 0.15 * x.size

    def test_ess_constant(self):
        assert effective_sample_size(np.ones(30)) == 30.0

    def test_geweke_stationary(self):
        x = np.random.default_rng(4).normal(size=2000)
        assert abs(geweke_z(x)) < 4.0

    def test_geweke_detects_drift(self):
        rng = np.random.default_rng(5)
        x = np.linspace(0.0, 5.0, 2000) + rng.normal(size=2000)
        assert abs(geweke_z(x)) > 4.0


class TestMCMCDiagnostics:
    """Per-term diagnostics of the final estimation chain."""

    def test_table(self, mcmc_fit):
        _, fitted = mcmc_fit
        diag = mcmc_diagnostics(fitted)
        assert list(diag.table.index) == fitted.labels
        for column in ("observed", "mean", "sd", "deviation", "t_ratio",
                       "lag1_acf", "ess", "geweke_z", "geweke_p"):
            assert column in diag.table.columns
        np.testing.assert_allclose(diag.table["observed"], fitted.observed_statistics)
        assert np.all(diag.table["ess"] <= fitted.sample.n_draws)
        assert np.all((diag.table["geweke_p"] >= 0) & (diag.table["geweke_p"] <= 1))

    def test_converged_chain_centred_on_observed(self, mcmc_fit):
        _, fitted = mcmc_fit
        diag = mcmc_diagnostics(fitted)
        assert np.all(np.abs(diag.table["t_ratio"]) < 0.5)

    def test_autocorrelation_frame(self, mcmc_fit):
        _, fitted = mcmc_fit
        diag = mcmc_diagnostics(fitted, max_lag=5)
        assert diag.autocorrelation.shape == (6, len(fitted.labels))
        np.testing.assert_allclose(diag.autocorrelation.loc[0], 1.0)
        assert 0.0 < diag.acceptance_rate <= 1.0

    def test_fitted_model_not_mutated(self, mcmc_fit):
        _, fitted = mcmc_fit
        before = fitted.sample.statistics.copy()
        mcmc_diagnostics(fitted)
        np.testing.assert_array_equal(fitted.sample.statistics, before)

    def test_mple_fit_has_no_chain(self, mple_fit):
        _, fitted = mple_fit
        with pytest.raises(ValueError, match="No MCMC sample"):
            mcmc_diagnostics(fitted)


class TestSimulateGraphs:
    """Fresh chains from the fitted model."""

    def test_draw_count_and_statistics(self, mple_fit):
        graph, fitted = mple_fit
        sims = simulate_graphs(fitted, graph, n_sims=5, burnin=500, interval=10, seed=0)
        assert len(sims.graphs) == 5
        assert sims.statistics.shape == (5, 2)
        features = DyadFeatures(graph, fitted.spec)
        for A, stats in zip(sims.graphs, sims.statistics):
            assert A.shape == graph.adjacency.shape
            np.testing.assert_allclose(features.statistics(A), stats)

    def test_same_seed_same_draws(self, mple_fit):
        graph, fitted = mple_fit
        a = simulate_graphs(fitted, graph, 3, burnin=200, interval=10, seed=9)
        b = simulate_graphs(fitted, graph, 3, burnin=200, interval=10, seed=9)
        np.testing.assert_array_equal(a.statistics, b.statistics)

    def test_simulated_means_match_observed(self, mple_fit):
        # At the exact MLE the expected statistics equal the observed ones
        graph, fitted = mple_fit
        sims = simulate_graphs(fitted, graph, n_sims=200, burnin=3000, interval=10, seed=1)
        mean = sims.statistics.mean(axis=0)
        se = sims.statistics.std(axis=0, ddof=1) / np.sqrt(200)
        assert np.all(np.abs(mean - fitted.observed_statistics) < 4 * se)

    def test_invalid_n_sims(self, mple_fit):
        graph, fitted = mple_fit
        with pytest.raises(ValueError, match="n_sims"):
            simulate_graphs(fitted, graph, 0)

    def test_zero_interval_rejected(self, mple_fit):
        graph, fitted = mple_fit
        with pytest.raises(ValueError, match="interval"):
            simulate_graphs(fitted, graph, 3, burnin=0, interval=0)
        with pytest.raises(ValueError, match="burnin"):
            simulate_graphs(fitted, graph, 3, burnin=-5, interval=10)


class TestDegreeDistribution:

    def test_counts_and_pooling(self):
        A = scipy.sparse.csr_matrix(np.array([
            [0, 1, 1, 1],
            [0, 0, 1, 0],
            [0, 0, 0, 0],
            [0, 0, 1, 0],
        ]))
        np.testing.assert_array_equal(degree_distribution(A, "out", 3), [1, 2, 0, 1])
        np.testing.assert_array_equal(degree_distribution(A, "in", 3), [1, 1, 1, 1])
        # Degrees above max_degree land in the last bin
        np.testing.assert_array_equal(degree_distribution(A, "out", 1), [1, 3])


class TestGoodnessOfFit:
    """Observed statistics placed within the simulated distribution."""

    @pytest.fixture(scope="class")
    def gof(self, mple_fit):
        graph, fitted = mple_fit
        return goodness_of_fit(
            fitted, graph, n_sims=30, burnin=1000, interval=10, seed=2
        )

    def test_tables(self, gof, mple_fit):
        graph, fitted = mple_fit
        assert isinstance(gof, GOFResult)
        assert set(gof.tables) == {"idegree", "odegree", "model"}
        assert list(gof.tables["model"].index) == fitted.labels
        for name in ("idegree", "odegree"):
            table = gof.tables[name]
            assert table.index.name == "degree"
            assert table["observed"].sum() == graph.n_vertices
            assert gof.simulated[name].shape == (30, len(table))
            np.testing.assert_array_equal(
                gof.simulated[name].sum(axis=1), graph.n_vertices
            )

    def test_envelope_ordering(self, gof):
        for table in gof.tables.values():
            assert np.all(table["min"] <= table["lower"])
            assert np.all(table["lower"] <= table["mean"] + 1e-9)
            assert np.all(table["mean"] <= table["upper"] + 1e-9)
            assert np.all(table["upper"] <= table["max"])
            assert np.all((table["mc_pvalue"] >= 0) & (table["mc_pvalue"] <= 1))

    def test_to_dict(self, gof):
        d = gof.to_dict()
        assert d["n_sims"] == 30
        assert {"degree", "observed", "mc_pvalue"} <= set(d["statistics"]["idegree"][0])
        assert d["statistics"]["model"][0]["term"] == "edges"

    def test_fixed_max_degree(self, mple_fit):
        graph, fitted = mple_fit
        gof = goodness_of_fit(
            fitted, graph, n_sims=3, statistics=("idegree",), max_degree=4,
            burnin=100, interval=10, seed=0,
        )
        assert len(gof.tables["idegree"]) == 5
        assert set(gof.tables) == {"idegree"}

    def test_unknown_statistic(self, mple_fit):
        graph, fitted = mple_fit
        with pytest.raises(ValueError, match="Unknown GOF"):
            goodness_of_fit(fitted, graph, n_sims=2, statistics=("triangles",))
