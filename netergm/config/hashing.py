"""Stable fingerprints of analysis configs.

Two hashes are stored with every result: one over the whole config (run
identity) and one over the parts that determine the fitted coefficients,
so reruns with a new description or more GOF simulations can be matched
to the fit they reproduce.
"""

import hashlib
import json
from dataclasses import asdict
from typing import Any

from netergm.config.experiment import AnalysisConfig

# Sections that do not influence the estimated coefficients
_NON_MODEL_FIELDS = ("description", "tags", "assortativity", "gof")


def _prune(tree: dict[str, Any], dotted: str) -> None:
    head, _, rest = dotted.partition(".")
    if not rest:
        tree.pop(head, None)
    elif isinstance(tree.get(head), dict):
        _prune(tree[head], rest)


def _canonical_json(tree: dict[str, Any]) -> bytes:
    return json.dumps(tree, sort_keys=True, separators=(",", ":")).encode("utf-8")


def config_hash(config: Any, exclude_fields: list[str] | None = None) -> str:
    """16-hex-digit SHA-256 digest of a config dataclass.

    ``exclude_fields`` takes dotted paths such as ``"mcmc.burnin"``;
    paths that do not exist are ignored.
    """
    tree = asdict(config)
    for dotted in exclude_fields or ():
        _prune(tree, dotted)
    return hashlib.sha256(_canonical_json(tree)).hexdigest()[:16]


def model_config_hash(config: AnalysisConfig) -> str:
    """Digest of data, model, MCMC settings and seed only."""
    return config_hash(config, exclude_fields=list(_NON_MODEL_FIELDS))


def full_config_hash(config: AnalysisConfig) -> str:
    return config_hash(config)
