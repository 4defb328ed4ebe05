"""Static figures for ERGM analyses: chain traces and goodness of fit."""

from netergm.visualization.render import load_result_data, render_all
from netergm.visualization.style import apply_style, save_figure

__all__ = [
    "render_all",
    "load_result_data",
    "apply_style",
    "save_figure",
]
