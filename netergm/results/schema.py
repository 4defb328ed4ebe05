"""Result schema validation and writing.

Uses a Python validation function (not jsonschema) to check required
fields and block shapes before writing result.json files.
"""

import json
import math
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np

from netergm.config.experiment import AnalysisConfig
from netergm.config.hashing import full_config_hash, model_config_hash
from netergm.reproducibility.git_hash import get_git_hash
from netergm.results.analysis_id import generate_analysis_id

SCHEMA_VERSION = "1.0"

REQUIRED_TOP_FIELDS = {
    "schema_version",
    "analysis_id",
    "timestamp",
    "description",
    "tags",
    "config",
    "metrics",
}

REQUIRED_METRICS_FIELDS = {"summary", "model"}

_TOP_FIELD_TYPES = (
    ("schema_version", str, "a string"),
    ("timestamp", str, "a string"),
    ("tags", list, "a list"),
    ("config", dict, "a dict"),
    ("metrics", dict, "a dict"),
)


def _to_jsonable(obj: Any) -> Any:
    """json.dump default: numpy scalars/arrays to Python, NaN/inf to None."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        value = float(obj)
        return value if math.isfinite(value) else None
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _clean_floats(obj: Any) -> Any:
    """Replace non-finite floats with None so the output is strict JSON."""
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None
    if isinstance(obj, dict):
        return {k: _clean_floats(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_clean_floats(v) for v in obj]
    return obj


def validate_result(result: dict[str, Any]) -> list[str]:
    """Problems with a result dict, as human-readable strings (empty if valid).

    Checks required top-level fields and their types, the ISO 8601
    timestamp, the summary and model blocks, per-term estimate and
    std_error, and the keys of the optional diagnostics and gof blocks.
    """
    missing = REQUIRED_TOP_FIELDS - result.keys()
    errors = [f"Missing required top-level fields: {sorted(missing)}"] if missing else []

    for field, expected, noun in _TOP_FIELD_TYPES:
        if field in result and not isinstance(result[field], expected):
            errors.append(f"{field} must be {noun}")

    if isinstance(result.get("timestamp"), str):
        try:
            datetime.fromisoformat(result["timestamp"])
        except ValueError:
            errors.append("timestamp must be in ISO 8601 format")

    metrics = result.get("metrics")
    if not isinstance(metrics, dict):
        return errors

    for name in sorted(REQUIRED_METRICS_FIELDS - set(metrics.keys())):
        errors.append(f"metrics.{name} is required")

    model = metrics.get("model")
    if isinstance(model, dict):
        if model.get("status") == "fitted":
            terms = model.get("terms")
            if not isinstance(terms, list) or not terms:
                errors.append("metrics.model.terms must be a non-empty list")
            else:
                for k, term in enumerate(terms):
                    for field in ("term", "estimate", "std_error"):
                        if field not in term:
                            errors.append(f"metrics.model.terms[{k}] missing field: {field}")
        elif "error" not in model:
            errors.append("metrics.model must have status 'fitted' or an error")
    elif model is not None:
        errors.append("metrics.model must be a dict")

    diagnostics = metrics.get("diagnostics")
    if diagnostics is not None:
        if not isinstance(diagnostics, dict):
            errors.append("metrics.diagnostics must be a dict")
        elif "by_term" not in diagnostics:
            errors.append("metrics.diagnostics missing required block: by_term")

    gof = metrics.get("gof")
    if gof is not None:
        if not isinstance(gof, dict):
            errors.append("metrics.gof must be a dict")
        else:
            for field in ("n_sims", "statistics"):
                if field not in gof:
                    errors.append(f"metrics.gof missing field: {field}")

    return errors


def write_result(
    config: AnalysisConfig,
    metrics: dict[str, Any],
    metadata: dict[str, Any] | None = None,
    results_dir: str | Path = "results",
    analysis_id: str | None = None,
) -> Path:
    """Write results/{analysis_id}/result.json.

    Args:
        config: The analysis configuration.
        metrics: Metrics dict (must include 'summary' and 'model').
        metadata: Optional additional metadata merged into the metadata block.
        results_dir: Base directory for result output.
        analysis_id: Reuse an existing ID; generated from config if None.

    Returns:
        Path to the written result.json.

    Raises:
        ValueError: If the assembled result fails validation.
    """
    analysis_id = analysis_id or generate_analysis_id(config)
    out_dir = Path(results_dir) / analysis_id
    out_dir.mkdir(parents=True, exist_ok=True)

    result = {
        "schema_version": SCHEMA_VERSION,
        "analysis_id": analysis_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "description": config.description,
        "tags": list(config.tags),
        "config": asdict(config),
        "metrics": metrics,
        "metadata": {
            "code_hash": get_git_hash(),
            "config_hash": full_config_hash(config),
            "model_config_hash": model_config_hash(config),
            **(metadata or {}),
        },
    }

    errors = validate_result(result)
    if errors:
        raise ValueError(
            "Result validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    # Round-trip through the encoder first so NaN becomes null everywhere
    encoded = json.loads(json.dumps(result, default=_to_jsonable))
    result_path = out_dir / "result.json"
    with open(result_path, "w") as f:
        json.dump(_clean_floats(encoded), f, indent=2, allow_nan=False)

    return result_path


def load_result(result_path: str | Path) -> dict[str, Any]:
    """Load and validate a result.json file.

    Raises:
        ValueError: If the loaded result fails validation.
    """
    with open(result_path) as f:
        result = json.load(f)
    errors = validate_result(result)
    if errors:
        raise ValueError(
            f"Invalid result at {result_path}:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )
    return result
