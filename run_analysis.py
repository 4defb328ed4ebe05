#!/usr/bin/env python3
"""Entry point for running an ERGM analysis of a follow network.

Chains all stages into a single executable command:
load graph -> component policy -> assortativity -> ERGM fit ->
MCMC diagnostics -> goodness of fit -> result.json -> figures -> report.

Relative data paths in the config are resolved against the config file's
directory.

Usage:
    python run_analysis.py --config config.json
    python run_analysis.py --config config.json --dry-run
    python run_analysis.py --config config.json --verbose
"""

import argparse
import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

import numpy as np
from dacite import DaciteError

from netergm.config import AnalysisConfig, config_from_json, full_config_hash
from netergm.results import generate_analysis_id

log = logging.getLogger(__name__)

# Exit code when estimation failed but results were still written
EXIT_ESTIMATION_FAILED = 2


@contextmanager
def stage_timer(name: str) -> Generator[None, None, None]:
    """Context manager that prints stage banners with elapsed time."""
    print(f"\n=== {name} ===")
    log.info("Starting: %s", name)
    t0 = time.monotonic()
    yield
    elapsed = time.monotonic() - t0
    print(f"... done in {elapsed:.1f}s")
    log.info("Completed: %s in %.1fs", name, elapsed)


def _resolve(path: str, base: Path) -> Path:
    p = Path(path)
    return p if p.is_absolute() else base / p


def run_pipeline(
    config_path: Path, results_dir: str | Path = "results"
) -> tuple[Path, bool]:
    """Execute the full analysis pipeline.

    Args:
        config_path: Path to analysis config JSON file.
        results_dir: Base directory for results output.

    Returns:
        (output directory, whether the model was fitted successfully).

    Raises:
        FormatError: Input tables are malformed (fatal).
    """
    # Lazy imports to keep --dry-run fast
    from netergm.analysis import run_assortativity_analysis
    from netergm.diagnostics import goodness_of_fit, mcmc_diagnostics
    from netergm.graph import apply_component_policy, graph_summary, load_graph
    from netergm.model import EstimationError, fit_ergm, parse_formula
    from netergm.reporting import generate_report
    from netergm.reproducibility import get_git_hash, set_seed
    from netergm.results import write_result
    from netergm.visualization import render_all
    from netergm.visualization.render import CHAIN_FILE, GOF_FILE

    pipeline_start = time.monotonic()
    config = config_from_json(config_path.read_text())
    base = config_path.resolve().parent
    analysis_id = generate_analysis_id(config)
    output_dir = Path(results_dir) / analysis_id
    output_dir.mkdir(parents=True, exist_ok=True)
    metrics: dict[str, Any] = {}

    log.info("Config loaded from %s", config_path)
    log.info("Seed: %d", config.seed)
    log.info("Git hash: %s", get_git_hash())

    with stage_timer("Reproducibility Seeding"):
        set_seed(config.seed)

    with stage_timer("Load Graph"):
        loaded = load_graph(
            _resolve(config.data.vertices_path, base),
            _resolve(config.data.edges_path, base),
            config.data,
        )

    with stage_timer("Component Policy"):
        graph, components = apply_component_policy(
            loaded, config.data.component_policy
        )
        metrics["components"] = components
        metrics["summary"] = graph_summary(graph)
        log.info(
            "Analysis frame: %d vertices, %d edges",
            graph.n_vertices, graph.n_edges,
        )

    with stage_timer("Assortativity"):
        metrics["assortativity"] = run_assortativity_analysis(
            graph,
            categorical=config.assortativity.categorical,
            numeric=config.assortativity.numeric,
            include_degree=config.assortativity.include_degree,
            n_permutations=config.assortativity.n_permutations,
            seed=config.seed,
        )

    fitted = None
    with stage_timer("ERGM Estimation"):
        spec = parse_formula(config.model.formula)
        try:
            fitted = fit_ergm(graph, spec, config.mcmc, seed=config.seed)
            metrics["model"] = {"status": "fitted", **fitted.to_dict()}
            print(fitted.summary().to_string())
        except EstimationError as e:
            log.error("Estimation failed: %s", e)
            metrics["model"] = {
                "status": "failed",
                "formula": spec.formula,
                "error_type": type(e).__name__,
                "error": str(e),
                "trace": e.trace,
            }

    if fitted is not None and fitted.sample is not None:
        with stage_timer("MCMC Diagnostics"):
            diag = mcmc_diagnostics(fitted)
            metrics["diagnostics"] = {
                "acceptance_rate": diag.acceptance_rate,
                "by_term": diag.table.reset_index().to_dict(orient="records"),
                "autocorrelation": {
                    k: v.tolist() for k, v in diag.autocorrelation.items()
                },
            }
            np.savez_compressed(
                str(output_dir / CHAIN_FILE),
                statistics=fitted.sample.statistics,
                observed=fitted.observed_statistics,
            )

    if fitted is not None:
        with stage_timer("Goodness of Fit"):
            gof = goodness_of_fit(
                fitted,
                graph,
                n_sims=config.gof.n_sims,
                statistics=config.gof.statistics,
                max_degree=config.gof.max_degree,
                burnin=config.mcmc.burnin,
                interval=config.mcmc.interval,
                seed=config.seed + 1,
                proposal=config.mcmc.proposal,
            )
            metrics["gof"] = gof.to_dict()
            arrays = {}
            for name in gof.observed:
                arrays[f"{name}_observed"] = gof.observed[name]
                arrays[f"{name}_simulated"] = gof.simulated[name]
            np.savez_compressed(str(output_dir / GOF_FILE), **arrays)

    with stage_timer("Write Result JSON"):
        result_path = write_result(
            config,
            metrics,
            metadata={"seed": config.seed, "config_path": str(config_path)},
            results_dir=results_dir,
            analysis_id=analysis_id,
        )
        log.info("Result written to %s", result_path)

    with stage_timer("Visualization"):
        figures = render_all(output_dir)

    with stage_timer("Reporting"):
        report_path = generate_report(output_dir)

    total_elapsed = time.monotonic() - pipeline_start
    print(f"\n{'=' * 60}")
    print(f"Analysis complete in {total_elapsed:.1f}s")
    print(f"  Analysis: {output_dir.name}")
    print(f"  Result:   {result_path}")
    print(f"  Figures:  {len(figures)} files")
    print(f"  Report:   {report_path}")
    print(f"  Model:    {metrics['model']['status'].upper()}")
    print(f"{'=' * 60}")

    return output_dir, fitted is not None


def _print_plan(config: AnalysisConfig, analysis_id: str) -> None:
    print(f"\nPipeline plan for analysis {analysis_id}:")
    print(f"  1. Set seed: {config.seed}")
    print(f"  2. Load graph: {config.data.vertices_path}, {config.data.edges_path}")
    print(f"  3. Component policy: {config.data.component_policy}")
    print(f"  4. Assortativity: categorical={list(config.assortativity.categorical)}, "
          f"numeric={list(config.assortativity.numeric)}, "
          f"permutations={config.assortativity.n_permutations}")
    print(f"  5. ERGM estimation: {config.model.formula}")
    print(f"  6. MCMC diagnostics (dyad-dependent models only)")
    print(f"  7. Goodness of fit: {config.gof.n_sims} simulations, "
          f"statistics={list(config.gof.statistics)}")
    print(f"  8. Figures and HTML report")
    print(f"\nOutput: results/{analysis_id}/")
    print(f"  - result.json")
    print(f"  - chain.npz, gof.npz")
    print(f"  - figures/ (PNG + SVG)")
    print(f"  - report.html")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Fit an ERGM to a directed follow network"
    )
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to analysis config JSON file",
    )
    parser.add_argument(
        "--results-dir",
        type=str,
        default="results",
        help="Base directory for analysis outputs",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show pipeline plan without running the analysis",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable DEBUG-level logging",
    )
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: config file not found: {config_path}", file=sys.stderr)
        sys.exit(1)

    try:
        config = config_from_json(config_path.read_text())
    except (ValueError, DaciteError) as e:
        print(f"Error: invalid config {config_path}: {e}", file=sys.stderr)
        sys.exit(1)

    analysis_id = generate_analysis_id(config)
    print(f"Analysis ID: {analysis_id}")
    print(f"Config hash: {full_config_hash(config)}")
    print(f"Formula:     {config.model.formula}")
    print(f"MCMC:        burnin={config.mcmc.burnin}, interval={config.mcmc.interval}, "
          f"sample_size={config.mcmc.sample_size}, max_iterations={config.mcmc.max_iterations}")
    print(f"Seed:        {config.seed}")

    if args.dry_run:
        _print_plan(config, analysis_id)
        print(f"\n[dry-run] Config loaded successfully. Exiting.")
        return

    from netergm.graph import FormatError

    try:
        _, fitted = run_pipeline(config_path, args.results_dir)
    except FormatError as e:
        log.error("Input error: %s", e)
        sys.exit(1)
    except Exception:
        log.exception("Pipeline failed")
        sys.exit(1)

    if not fitted:
        print(
            "Estimation did not succeed; adjust mcmc settings "
            "(burnin, interval, max_iterations) or the formula and rerun.",
            file=sys.stderr,
        )
        sys.exit(EXIT_ESTIMATION_FAILED)


if __name__ == "__main__":
    main()
