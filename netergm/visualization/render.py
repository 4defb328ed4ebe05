"""Orchestrator: render all figures for a single analysis.

Reads result.json, chain.npz and gof.npz, calls all plot functions,
saves to results/{analysis_id}/figures/ as PNG + SVG.
"""

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from netergm.visualization.gof import plot_gof
from netergm.visualization.style import apply_style, save_figure
from netergm.visualization.traces import plot_autocorrelation, plot_mcmc_traces

log = logging.getLogger(__name__)

CHAIN_FILE = "chain.npz"
GOF_FILE = "gof.npz"


def load_result_data(result_dir: str | Path) -> dict[str, Any]:
    """Load result.json plus the chain and GOF arrays of an analysis.

    Returns:
        Dict with keys:
        - result: the parsed result.json dict
        - chain: arrays from chain.npz (empty if absent)
        - gof: arrays from gof.npz (empty if absent)
    """
    result_dir = Path(result_dir)
    with open(result_dir / "result.json") as f:
        result = json.load(f)

    arrays: dict[str, dict[str, np.ndarray]] = {}
    for key, fname in (("chain", CHAIN_FILE), ("gof", GOF_FILE)):
        path = result_dir / fname
        arrays[key] = dict(np.load(str(path), allow_pickle=False)) if path.exists() else {}

    return {"result": result, **arrays}


def render_all(result_dir: str | Path) -> list[Path]:
    """Generate all figures for a single analysis.

    Each plot type is wrapped in try/except so one failure doesn't
    block the others.

    Args:
        result_dir: Path to results/{analysis_id}/ directory.

    Returns:
        List of paths to generated figure files.
    """
    apply_style()

    result_dir = Path(result_dir)
    data = load_result_data(result_dir)
    figures_dir = result_dir / "figures"
    generated: list[Path] = []

    model = data["result"].get("metrics", {}).get("model", {})
    labels = [t["term"] for t in model.get("terms", [])]
    chain = data["chain"]
    gof = data["gof"]

    if "statistics" in chain and labels:
        try:
            fig = plot_mcmc_traces(chain["statistics"], chain["observed"], labels)
            generated.extend(save_figure(fig, figures_dir, "mcmc_traces"))
        except Exception:
            log.exception("Failed to render MCMC traces")

        diag = data["result"]["metrics"].get("diagnostics", {})
        acf = diag.get("autocorrelation", {})
        if acf:
            try:
                fig = plot_autocorrelation(
                    {k: np.asarray(v, dtype=np.float64) for k, v in acf.items()}
                )
                generated.extend(save_figure(fig, figures_dir, "mcmc_autocorrelation"))
            except Exception:
                log.exception("Failed to render autocorrelation plot")

    for name, title in (
        ("idegree", "In-degree distribution"),
        ("odegree", "Out-degree distribution"),
    ):
        if f"{name}_simulated" not in gof:
            continue
        try:
            sim = gof[f"{name}_simulated"]
            fig = plot_gof(
                gof[f"{name}_observed"], sim,
                [str(d) for d in range(sim.shape[1])],
                title=f"Goodness of fit: {title}", xlabel="Degree", proportion=True,
            )
            generated.extend(save_figure(fig, figures_dir, f"gof_{name}"))
        except Exception:
            log.exception("Failed to render GOF plot for %s", name)

    if "model_simulated" in gof and labels:
        try:
            obs = gof["model_observed"]
            fig = plot_gof(
                np.zeros_like(obs), gof["model_simulated"] - obs[None, :], labels,
                title="Goodness of fit: model statistics (simulated - observed)",
                xlabel="Term",
            )
            generated.extend(save_figure(fig, figures_dir, "gof_model"))
        except Exception:
            log.exception("Failed to render GOF plot for model statistics")

    log.info("Rendered %d figure files to %s", len(generated), figures_dir)
    return generated
