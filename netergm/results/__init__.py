"""Result schema validation, writing, and analysis ID generation."""

from netergm.results.schema import load_result, validate_result, write_result
from netergm.results.analysis_id import generate_analysis_id

__all__ = [
    "validate_result",
    "write_result",
    "load_result",
    "generate_analysis_id",
]
