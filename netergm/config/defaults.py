"""Default configuration: single source of truth for analysis parameters."""

from netergm.config.experiment import AnalysisConfig

# All-default values: largest weak component, five-term legislature model,
# TNT proposals with 20k burn-in, 1024 draws at interval 200, seed=42.
DEFAULT_CONFIG = AnalysisConfig()
