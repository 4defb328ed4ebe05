"""Single-analysis HTML report generator.

Produces a self-contained HTML file with the graph summary, assortativity
table, coefficient table, chain diagnostics, goodness-of-fit summary,
base64-embedded figures, and a reproduction block.
"""

import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from netergm.model.types import significance_stars
from netergm.reporting.embed import embed_figure
from netergm.visualization.render import load_result_data

log = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).parent / "templates"


def _fmt(value: Any, digits: int = 4) -> str:
    if value is None:
        return "NA"
    if isinstance(value, float):
        return f"{value:.{digits}g}"
    return str(value)


def _assortativity_rows(assortativity: dict[str, Any]) -> list[dict[str, str]]:
    rows = []
    for kind in ("categorical", "numeric"):
        for name, res in assortativity.get(kind, {}).items():
            rows.append({
                "attribute": name,
                "kind": kind,
                "observed": _fmt(res.get("observed")),
                "z_score": _fmt(res.get("z_score"), 3),
                "p_value": _fmt(res.get("p_value"), 3),
            })
    if "degree" in assortativity:
        rows.append({
            "attribute": "degree (out-in)",
            "kind": "degree",
            "observed": _fmt(assortativity["degree"]),
            "z_score": "",
            "p_value": "",
        })
    return rows


def _coefficient_rows(model: dict[str, Any]) -> list[dict[str, str]]:
    return [
        {
            "term": t["term"],
            "estimate": _fmt(t.get("estimate")),
            "std_error": _fmt(t.get("std_error")),
            "z_value": _fmt(t.get("z_value"), 3),
            "p_value": _fmt(t.get("p_value"), 3),
            "signif": significance_stars(
                t["p_value"] if t.get("p_value") is not None else float("nan")
            ),
        }
        for t in model.get("terms", [])
    ]


def _diagnostic_rows(diagnostics: dict[str, Any]) -> list[dict[str, str]]:
    return [
        {
            "term": row["term"],
            "observed": _fmt(row.get("observed")),
            "mean": _fmt(row.get("mean")),
            "t_ratio": _fmt(row.get("t_ratio"), 3),
            "lag1_acf": _fmt(row.get("lag1_acf"), 3),
            "ess": _fmt(row.get("ess"), 3),
            "geweke_z": _fmt(row.get("geweke_z"), 3),
        }
        for row in diagnostics.get("by_term", [])
    ]


def _gof_model_rows(gof: dict[str, Any]) -> list[dict[str, str]]:
    rows = gof.get("statistics", {}).get("model", [])
    return [
        {
            "term": row.get("term", ""),
            "observed": _fmt(row.get("observed")),
            "min": _fmt(row.get("min")),
            "mean": _fmt(row.get("mean")),
            "max": _fmt(row.get("max")),
            "mc_pvalue": _fmt(row.get("mc_pvalue"), 3),
        }
        for row in rows
    ]


def _collect_figures(figures_dir: Path) -> list[dict[str, str]]:
    figures = []
    if not figures_dir.exists():
        return figures
    for png in sorted(figures_dir.glob("*.png")):
        uri = embed_figure(png)
        if uri:
            figures.append({
                "title": png.stem.replace("_", " ").capitalize(),
                "data_uri": uri,
            })
    return figures


def build_reproduction_block(result: dict[str, Any]) -> dict[str, Any]:
    """Git checkout and CLI commands that rerun this analysis."""
    code_hash = result.get("metadata", {}).get("code_hash", "unknown")
    is_dirty = code_hash.endswith("-dirty")
    return {
        "checkout_cmd": f"git checkout {code_hash.removesuffix('-dirty')}",
        "run_cmd": "python run_analysis.py --config config.json",
        "seed": result.get("config", {}).get("seed"),
        "dirty_warning": (
            "The working tree had uncommitted changes when this analysis "
            "ran; results may not be exactly reproducible."
        ) if is_dirty else None,
    }


def generate_report(
    result_dir: str | Path,
    output_path: str | Path | None = None,
) -> Path:
    """Render results/{analysis_id}/report.html.

    Args:
        result_dir: Path to results/{analysis_id}/ directory.
        output_path: Where to write the HTML. Defaults to {result_dir}/report.html.

    Returns:
        Path to the generated HTML report file.
    """
    result_dir = Path(result_dir)
    result = load_result_data(result_dir)["result"]
    metrics = result.get("metrics", {})
    model = metrics.get("model", {})

    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    template = env.get_template("report.html")

    html = template.render(
        analysis_id=result.get("analysis_id", "Unknown"),
        timestamp=result.get("timestamp", ""),
        description=result.get("description", ""),
        summary={k: _fmt(v) for k, v in metrics.get("summary", {}).items()},
        components=metrics.get("components", {}),
        assortativity=_assortativity_rows(metrics.get("assortativity", {})),
        formula=model.get("formula", result.get("config", {}).get("model", {}).get("formula", "")),
        model=model,
        coefficients=_coefficient_rows(model),
        diagnostics=_diagnostic_rows(metrics.get("diagnostics", {})),
        gof=metrics.get("gof", {}),
        gof_model=_gof_model_rows(metrics.get("gof", {})),
        aic=_fmt(model.get("aic"), 6),
        bic=_fmt(model.get("bic"), 6),
        figures=_collect_figures(result_dir / "figures"),
        reproduction=build_reproduction_block(result),
    )

    output_path = Path(output_path) if output_path else result_dir / "report.html"
    output_path.write_text(html, encoding="utf-8")
    log.info("Report written to %s", output_path)
    return output_path
