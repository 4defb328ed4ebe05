"""Analysis configuration system with frozen, hashable, serializable dataclasses."""

from netergm.config.experiment import (
    AnalysisConfig,
    AssortativityConfig,
    DataConfig,
    GOFConfig,
    MCMCConfig,
    ModelConfig,
)
from netergm.config.defaults import DEFAULT_CONFIG
from netergm.config.hashing import config_hash, model_config_hash, full_config_hash
from netergm.config.serialization import (
    config_from_dict,
    config_from_json,
    config_to_dict,
    config_to_json,
)

__all__ = [
    "AnalysisConfig",
    "AssortativityConfig",
    "DataConfig",
    "GOFConfig",
    "MCMCConfig",
    "ModelConfig",
    "DEFAULT_CONFIG",
    "config_hash",
    "model_config_hash",
    "full_config_hash",
    "config_to_json",
    "config_from_json",
    "config_to_dict",
    "config_from_dict",
]
