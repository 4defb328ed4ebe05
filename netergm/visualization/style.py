"""Shared figure theme and file output for diagnostic plots.

Chains and simulated graphs are drawn in SIMULATED_COLOR, observed
statistics in OBSERVED_COLOR, and 95% envelopes in ENVELOPE_COLOR.
"""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path

PALETTE = sns.color_palette("colorblind", n_colors=8)
SIMULATED_COLOR = PALETTE[0]
OBSERVED_COLOR = PALETTE[3]
ENVELOPE_COLOR = (0.6, 0.6, 0.6)

FIGURE_FORMATS = ("png", "svg")

_RC = {
    "figure.dpi": 150,
    "savefig.dpi": 300,
    "figure.figsize": (8, 5),
    "font.size": 10,
    "axes.titlesize": 12,
    "axes.labelsize": 11,
    "legend.fontsize": 9,
    "xtick.labelsize": 9,
    "ytick.labelsize": 9,
    "svg.fonttype": "none",  # keep text editable in SVG output
}


def apply_style() -> None:
    """Whitegrid theme with the colorblind palette; safe to call repeatedly."""
    sns.set_theme(style="whitegrid", palette=PALETTE)
    plt.rcParams.update(_RC)


def save_figure(fig: plt.Figure, output_dir: Path, name: str) -> tuple[Path, Path]:
    """Write ``name.png`` and ``name.svg`` under ``output_dir`` and close ``fig``.

    Returns:
        (png_path, svg_path)
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = tuple(output_dir / f"{name}.{fmt}" for fmt in FIGURE_FORMATS)
    for path in paths:
        fig.savefig(path, bbox_inches="tight")
    plt.close(fig)
    return paths
