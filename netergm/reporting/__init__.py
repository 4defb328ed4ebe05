"""Self-contained HTML reports for individual analyses."""

from netergm.reporting.embed import embed_figure
from netergm.reporting.report import build_reproduction_block, generate_report

__all__ = [
    "build_reproduction_block",
    "embed_figure",
    "generate_report",
]
