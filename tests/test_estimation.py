"""Tests for ERGM estimation: MPLE, MCMC-MLE and failure modes."""

from dataclasses import replace

import numpy as np
import pandas as pd
import pytest

from netergm.graph import FormatError, build_graph
from netergm.model import (
    DegenerateModelError,
    DyadFeatures,
    EstimationError,
    FittedModel,
    NonConvergenceError,
    fit_ergm,
    parse_formula,
)
from netergm.model.estimation import _check_degenerate, _fit_mcmcmle
from netergm.model.types import significance_stars

from conftest import TEST_MCMC, make_graph


def _dyad_census(graph):
    """(null, asymmetric, mutual) counts over unordered vertex pairs."""
    A = graph.adjacency.toarray()
    iu = np.triu_indices(graph.n_vertices, k=1)
    both = (A & A.T)[iu].sum()
    either = (A | A.T)[iu].sum()
    n_pairs = len(iu[0])
    return n_pairs - either, either - both, both


def _sparse_graph():
    """12 vertices, 5 edges: one reciprocated pair and three one-way edges."""
    ids = [f"v{i:02d}" for i in range(12)]
    edges = pd.DataFrame(
        [("v00", "v01"), ("v01", "v00"), ("v02", "v03"), ("v04", "v05"), ("v06", "v07")],
        columns=["source", "target"],
    )
    return build_graph(pd.DataFrame({"id": ids}), edges)


def _features(graph, formula):
    features = DyadFeatures(graph, parse_formula(formula))
    return features, features.statistics(graph.adjacency)


class TestDyadIndependentFit:
    """Dyad-independent models are fitted exactly by MPLE."""

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_edges_only_recovers_log_odds(self, seed):
        g = make_graph(n=12, seed=seed)
        V, E = g.n_vertices, g.n_edges
        fitted = fit_ergm(g, "edges")
        assert fitted.coef()["edges"] == pytest.approx(
            np.log(E / (V * (V - 1) - E)), abs=1e-6
        )

    def test_edges_only_standard_error_and_likelihood(self, small_graph):
        D = small_graph.n_vertices * (small_graph.n_vertices - 1)
        E = small_graph.n_edges
        p = E / D
        fitted = fit_ergm(small_graph, "edges")
        assert fitted.method == "MPLE"
        assert fitted.converged
        assert fitted.iterations == 0
        assert fitted.sample is None
        assert fitted.standard_errors[0] == pytest.approx(
            1.0 / np.sqrt(D * p * (1 - p)), rel=1e-4
        )
        expected_ll = E * np.log(p) + (D - E) * np.log(1 - p)
        assert fitted.log_likelihood == pytest.approx(expected_ll, rel=1e-8)
        assert fitted.aic == pytest.approx(2 - 2 * expected_ll, rel=1e-8)
        assert fitted.bic == pytest.approx(np.log(D) - 2 * expected_ll, rel=1e-8)

    def test_nodematch_recovers_group_log_odds(self, mple_fit):
        g, fitted = mple_fit
        A = g.adjacency.toarray().astype(bool)
        party = g.attribute_array("party")
        same = party[:, None] == party[None, :]
        off = ~np.eye(g.n_vertices, dtype=bool)

        def logit(mask):
            p = A[mask].mean()
            return np.log(p / (1 - p))

        coef = fitted.coef()
        assert coef["edges"] == pytest.approx(logit(off & ~same), abs=1e-6)
        assert coef["edges"] + coef["nodematch.party"] == pytest.approx(
            logit(off & same), abs=1e-6
        )

    def test_formula_string_or_spec(self, small_graph):
        a = fit_ergm(small_graph, "edges + nodematch(gender)")
        b = fit_ergm(small_graph, parse_formula("edges + nodematch(gender)"))
        np.testing.assert_allclose(a.coefficients, b.coefficients)


class TestMCMCMLE:
    """Dyad-dependent models are refined by MCMC-MLE."""

    def test_mutual_model_recovers_closed_form(self, small_graph):
        # edges + mutual factorizes over unordered pairs, so its MLE is explicit
        n_null, n_asym, n_mutual = _dyad_census(small_graph)
        theta_e = np.log(n_asym / (2.0 * n_null))
        theta_m = np.log(n_mutual / n_null) - 2.0 * theta_e
        fitted = fit_ergm(small_graph, "edges + mutual", TEST_MCMC, seed=3)
        assert fitted.method == "MCMCMLE"
        np.testing.assert_allclose(fitted.coefficients, [theta_e, theta_m], atol=0.3)

    def test_fitted_structure(self, mcmc_fit):
        _, fitted = mcmc_fit
        assert isinstance(fitted, FittedModel)
        assert fitted.labels == ["edges", "mutual", "nodematch.party"]
        assert fitted.converged
        assert fitted.iterations == len(fitted.trace) >= 1
        assert fitted.sample.n_draws == TEST_MCMC.sample_size
        assert fitted.sample.statistics.shape == (TEST_MCMC.sample_size, 3)
        assert np.all(fitted.standard_errors > 0)
        assert np.all((fitted.p_values >= 0) & (fitted.p_values <= 1))
        assert fitted.log_likelihood is None
        assert fitted.aic is None

    def test_converged_t_ratios_within_tolerance(self, mcmc_fit):
        _, fitted = mcmc_fit
        last = fitted.trace[-1]
        assert max(abs(t) for t in last["t_ratio"]) < TEST_MCMC.tolerance
        np.testing.assert_allclose(last["theta"], fitted.coefficients)

    def test_homophily_detected(self, mcmc_fit):
        _, fitted = mcmc_fit
        coef = fitted.coef()
        assert coef["nodematch.party"] > 0
        assert coef["mutual"] > 0

    def test_same_seed_same_coefficients(self, small_graph):
        a = fit_ergm(small_graph, "edges + mutual", TEST_MCMC, seed=11)
        b = fit_ergm(small_graph, "edges + mutual", TEST_MCMC, seed=11)
        np.testing.assert_array_equal(a.coefficients, b.coefficients)
        np.testing.assert_array_equal(a.standard_errors, b.standard_errors)

    def test_fitted_model_is_immutable(self, mcmc_fit):
        _, fitted = mcmc_fit
        with pytest.raises(AttributeError):
            fitted.coefficients = np.zeros(3)  # type: ignore[misc]


class TestSummaryTable:

    def test_summary_columns(self, mcmc_fit):
        _, fitted = mcmc_fit
        table = fitted.summary()
        assert list(table.index) == fitted.labels
        assert list(table.columns) == [
            "estimate", "std_error", "z_value", "p_value", "signif",
        ]
        np.testing.assert_allclose(
            table["z_value"], table["estimate"] / table["std_error"]
        )

    def test_to_dict(self, mple_fit):
        _, fitted = mple_fit
        d = fitted.to_dict()
        assert d["method"] == "MPLE"
        assert d["formula"] == "edges + nodematch(party)"
        assert [t["term"] for t in d["terms"]] == fitted.labels
        assert {"estimate", "std_error", "z_value", "p_value", "observed"} <= set(d["terms"][0])
        assert d["aic"] == pytest.approx(fitted.aic)


class TestSparseGraph:
    """A very sparse graph whose chain sometimes visits the empty graph."""

    def test_edges_mutual_fit_succeeds(self):
        graph = _sparse_graph()
        fitted = fit_ergm(graph, "edges + mutual", TEST_MCMC, seed=1)
        assert fitted.method == "MCMCMLE"
        assert fitted.converged
        assert np.all(np.isfinite(fitted.coefficients))
        # Closed form: log(A / (2 * N0)) with 3 asymmetric and 62 null pairs
        assert fitted.coef()["edges"] == pytest.approx(np.log(3 / 124), abs=0.5)

    def test_occasional_empty_draws_are_not_degenerate(self):
        counts = np.array([5, 4, 0, 3, 6, 0, 5, 4, 7, 5])
        _check_degenerate(counts, n_dyads=132, trace=[])

    def test_pinned_tail_is_degenerate(self):
        counts = np.array([5, 3, 2, 1, 0, 0, 0, 0])
        with pytest.raises(DegenerateModelError, match="empty"):
            _check_degenerate(counts, n_dyads=132, trace=[])
        with pytest.raises(DegenerateModelError, match="complete"):
            _check_degenerate(np.array([120, 132, 132, 132]), n_dyads=132, trace=[])


class TestEstimationFailures:
    """Failure modes surface as typed errors with diagnostic context."""

    def test_non_convergence_carries_trace(self, small_graph):
        config = replace(TEST_MCMC, max_iterations=2, tolerance=1e-9)
        with pytest.raises(NonConvergenceError) as excinfo:
            fit_ergm(small_graph, "edges + mutual", config, seed=0)
        err = excinfo.value
        assert isinstance(err, EstimationError)
        assert len(err.trace) == 2
        assert [e["iteration"] for e in err.trace] == [1, 2]
        assert {"theta", "simulated_mean", "t_ratio", "acceptance_rate"} <= set(err.trace[0])
        assert err.last_sample is not None
        assert err.last_sample.n_draws == config.sample_size

    def test_empty_graph_is_degenerate(self):
        g = build_graph(
            pd.DataFrame({"id": [1, 2, 3]}), pd.DataFrame({"source": [], "target": []})
        )
        with pytest.raises(DegenerateModelError, match="empty"):
            fit_ergm(g, "edges")

    def test_complete_graph_is_degenerate(self):
        ids = [1, 2, 3]
        edges = pd.DataFrame(
            [(i, j) for i in ids for j in ids if i != j], columns=["source", "target"]
        )
        g = build_graph(pd.DataFrame({"id": ids}), edges)
        with pytest.raises(DegenerateModelError, match="complete"):
            fit_ergm(g, "edges + mutual", TEST_MCMC)

    def test_perfect_separation_is_degenerate(self):
        # No cross-party edges: the nodematch coefficient diverges
        g = make_graph(p_diff=0.0)
        with pytest.raises(DegenerateModelError, match="pseudo-likelihood"):
            fit_ergm(g, "edges + nodematch(party)")

    def test_chain_collapsing_to_empty_graph(self):
        graph = _sparse_graph()
        features, observed = _features(graph, "edges + mutual")
        with pytest.raises(DegenerateModelError, match="empty") as excinfo:
            _fit_mcmcmle(
                graph, features, observed, np.array([-8.0, 0.0]),
                TEST_MCMC, np.random.default_rng(0),
            )
        assert len(excinfo.value.trace) == 1

    def test_frozen_statistic(self):
        # A huge negative mutual coefficient dissolves the only reciprocated
        # pair during burn-in and it never forms again
        graph = _sparse_graph()
        features, observed = _features(graph, "edges + mutual")
        with pytest.raises(DegenerateModelError, match="never varied"):
            _fit_mcmcmle(
                graph, features, observed, np.array([-3.7, -50.0]),
                TEST_MCMC, np.random.default_rng(0),
            )

    def test_unknown_attribute(self, small_graph):
        with pytest.raises(FormatError):
            fit_ergm(small_graph, "edges + nodematch(state)")

    def test_too_few_vertices(self):
        g = build_graph(
            pd.DataFrame({"id": [1]}), pd.DataFrame({"source": [], "target": []})
        )
        with pytest.raises(ValueError, match="two vertices"):
            fit_ergm(g, "edges")


class TestSignificanceStars:

    @pytest.mark.parametrize(
        "p, stars",
        [(1e-5, "***"), (0.005, "**"), (0.03, "*"), (0.07, ""), (0.5, ""), (float("nan"), "")],
    )
    def test_levels(self, p, stars):
        assert significance_stars(p) == stars
