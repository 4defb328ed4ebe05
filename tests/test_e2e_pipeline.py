"""Integration tests for the end-to-end analysis pipeline.

Tests the full pipeline from config loading through report generation
using a small synthetic network and short chains for fast execution.
"""

import json
import subprocess
import sys
from dataclasses import replace
from pathlib import Path

import pandas as pd
import pytest

from netergm.config import (
    AnalysisConfig,
    AssortativityConfig,
    DataConfig,
    GOFConfig,
    MCMCConfig,
    ModelConfig,
)
from netergm.config.serialization import config_to_json
from netergm.results import validate_result

from conftest import make_tables

ROOT = Path(__file__).resolve().parents[1]

# Tiny config for fast E2E testing.
# 15 vertices (plus one isolate dropped by the component policy) and
# short chains keep each iteration well under a second.
TINY_CONFIG = AnalysisConfig(
    data=DataConfig(vertices_path="vertices.csv", edges_path="edges.csv"),
    assortativity=AssortativityConfig(n_permutations=20),
    model=ModelConfig(formula="edges + mutual + nodematch(party)"),
    mcmc=MCMCConfig(
        burnin=1000,
        interval=50,
        sample_size=200,
        max_iterations=30,
        tolerance=0.3,
    ),
    gof=GOFConfig(n_sims=5),
    seed=42,
    description="E2E pipeline test",
    tags=("test", "e2e"),
)


def _write_inputs(tmp_path: Path, config: AnalysisConfig = TINY_CONFIG) -> Path:
    """Write vertex/edge tables and the config next to each other."""
    vertices, edges = make_tables()
    isolate = pd.DataFrame([{
        "id": "v99", "chamber": "house", "party": "I", "gender": "F",
        "followers_count": 10,
    }])
    pd.concat([vertices, isolate]).to_csv(tmp_path / "vertices.csv", index=False)
    edges.to_csv(tmp_path / "edges.csv", index=False)
    config_path = tmp_path / "config.json"
    config_path.write_text(config_to_json(config))
    return config_path


def _run_cli(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "run_analysis.py", *args],
        capture_output=True,
        text=True,
        timeout=300,
        cwd=ROOT,
    )


class TestDryRun:
    """Tests for --dry-run mode."""

    def test_dry_run_exits_cleanly(self, tmp_path: Path) -> None:
        """Dry run should load config and print plan without executing."""
        config_path = _write_inputs(tmp_path)
        result = _run_cli("--config", str(config_path), "--dry-run")
        assert result.returncode == 0, result.stderr
        assert "Pipeline plan" in result.stdout
        assert "dry-run" in result.stdout.lower()

    def test_dry_run_shows_stages(self, tmp_path: Path) -> None:
        """Dry run should list all pipeline stages."""
        config_path = _write_inputs(tmp_path)
        output = _run_cli("--config", str(config_path), "--dry-run").stdout
        assert "Set seed" in output
        assert "Load graph" in output
        assert "Component policy" in output
        assert "Assortativity" in output
        assert "ERGM estimation" in output
        assert "Goodness of fit" in output

    def test_dry_run_writes_nothing(self, tmp_path: Path) -> None:
        config_path = _write_inputs(tmp_path)
        _run_cli("--config", str(config_path), "--dry-run", "--results-dir", str(tmp_path / "results"))
        assert not (tmp_path / "results").exists()


class TestCLIErrors:
    """Bad inputs exit non-zero with a message."""

    def test_missing_config(self, tmp_path: Path) -> None:
        result = _run_cli("--config", str(tmp_path / "absent.json"))
        assert result.returncode == 1
        assert "not found" in result.stderr

    def test_invalid_config(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"mcmc": {"burn_in": 10}}))
        result = _run_cli("--config", str(config_path), "--dry-run")
        assert result.returncode == 1
        assert "invalid config" in result.stderr

    def test_format_error(self, tmp_path: Path) -> None:
        config_path = _write_inputs(tmp_path)
        with open(tmp_path / "edges.csv", "a") as f:
            f.write("v00,nobody\n")
        result = _run_cli(
            "--config", str(config_path), "--results-dir", str(tmp_path / "results")
        )
        assert result.returncode == 1
        assert "unknown vertex ids" in result.stderr


class TestFullPipeline:
    """Full pipeline run with the tiny config."""

    @pytest.fixture(scope="class")
    def pipeline_output(self, tmp_path_factory) -> Path:
        from run_analysis import run_pipeline

        tmp_path = tmp_path_factory.mktemp("e2e")
        config_path = _write_inputs(tmp_path)
        output_dir, fitted = run_pipeline(config_path, tmp_path / "results")
        assert fitted
        return output_dir

    def test_result_json_valid(self, pipeline_output: Path) -> None:
        result = json.loads((pipeline_output / "result.json").read_text())
        assert validate_result(result) == []
        assert result["description"] == "E2E pipeline test"
        assert result["tags"] == ["test", "e2e"]

    def test_component_policy_recorded(self, pipeline_output: Path) -> None:
        metrics = json.loads((pipeline_output / "result.json").read_text())["metrics"]
        assert metrics["components"]["policy"] == "largest_weak"
        assert "v99" in metrics["components"]["discarded_vertex_ids"]
        assert metrics["summary"]["vertices"] == metrics["components"]["vertices_kept"]

    def test_metric_blocks(self, pipeline_output: Path) -> None:
        metrics = json.loads((pipeline_output / "result.json").read_text())["metrics"]
        assert set(metrics["assortativity"]["categorical"]) == {"chamber", "party", "gender"}
        assert metrics["model"]["status"] == "fitted"
        assert metrics["model"]["method"] == "MCMCMLE"
        assert [t["term"] for t in metrics["model"]["terms"]] == [
            "edges", "mutual", "nodematch.party",
        ]
        assert len(metrics["diagnostics"]["by_term"]) == 3
        assert metrics["gof"]["n_sims"] == 5
        assert set(metrics["gof"]["statistics"]) == {"idegree", "odegree", "model"}

    def test_arrays_written(self, pipeline_output: Path) -> None:
        assert (pipeline_output / "chain.npz").exists()
        assert (pipeline_output / "gof.npz").exists()

    def test_figures_rendered(self, pipeline_output: Path) -> None:
        figures = {p.name for p in (pipeline_output / "figures").iterdir()}
        for name in ("mcmc_traces", "mcmc_autocorrelation", "gof_idegree", "gof_odegree", "gof_model"):
            assert f"{name}.png" in figures
            assert f"{name}.svg" in figures

    def test_report_generated(self, pipeline_output: Path) -> None:
        html = (pipeline_output / "report.html").read_text()
        assert "nodematch.party" in html
        assert "data:image/png;base64," in html


class TestEstimationFailure:
    """A failed fit is still recorded, and the CLI exits with code 2."""

    def test_non_convergence_exit_code(self, tmp_path: Path) -> None:
        config = replace(
            TINY_CONFIG,
            mcmc=replace(TINY_CONFIG.mcmc, max_iterations=1, tolerance=1e-9),
        )
        config_path = _write_inputs(tmp_path, config)
        results_dir = tmp_path / "results"
        result = _run_cli("--config", str(config_path), "--results-dir", str(results_dir))
        assert result.returncode == 2, result.stderr

        (output_dir,) = list(results_dir.iterdir())
        data = json.loads((output_dir / "result.json").read_text())
        model = data["metrics"]["model"]
        assert model["status"] == "failed"
        assert model["error_type"] == "NonConvergenceError"
        assert len(model["trace"]) == 1
        assert "diagnostics" not in data["metrics"]
        assert (output_dir / "report.html").exists()
