"""Goodness-of-fit boxplots: simulated distribution vs observed values."""

import matplotlib.pyplot as plt
import numpy as np

from netergm.visualization.style import ENVELOPE_COLOR, OBSERVED_COLOR, SIMULATED_COLOR


def plot_gof(
    observed: np.ndarray,
    simulated: np.ndarray,
    xlabels: list[str],
    title: str,
    xlabel: str,
    proportion: bool = False,
) -> plt.Figure:
    """Boxplot per entry of the simulated statistic with the observed line.

    Args:
        observed: Observed values, shape (n_entries,).
        simulated: Simulated values, shape (n_sims, n_entries).
        xlabels: Tick labels (degrees or term labels).
        title: Figure title.
        xlabel: X axis label.
        proportion: Divide each row by its sum (degree distributions).

    Returns:
        The matplotlib Figure.
    """
    observed = np.asarray(observed, dtype=np.float64)
    simulated = np.asarray(simulated, dtype=np.float64)
    if proportion:
        observed = observed / max(observed.sum(), 1.0)
        totals = simulated.sum(axis=1, keepdims=True)
        simulated = simulated / np.where(totals > 0, totals, 1.0)

    width = min(max(6.0, 0.35 * len(xlabels)), 18.0)
    fig, ax = plt.subplots(figsize=(width, 4.5))
    positions = np.arange(len(xlabels))
    bp = ax.boxplot(
        simulated, positions=positions, patch_artist=True,
        widths=0.6, showfliers=False,
    )
    for patch in bp["boxes"]:
        patch.set_facecolor(SIMULATED_COLOR)
        patch.set_alpha(0.4)

    lower = np.quantile(simulated, 0.025, axis=0)
    upper = np.quantile(simulated, 0.975, axis=0)
    ax.plot(positions, lower, color=ENVELOPE_COLOR, linewidth=0.8, linestyle=":")
    ax.plot(positions, upper, color=ENVELOPE_COLOR, linewidth=0.8, linestyle=":")
    ax.plot(
        positions, observed, color=OBSERVED_COLOR, marker="o", markersize=3,
        linewidth=1.5, label="Observed",
    )

    step = max(1, len(xlabels) // 25)
    ax.set_xticks(positions[::step])
    ax.set_xticklabels([xlabels[i] for i in range(0, len(xlabels), step)], rotation=45)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("Proportion of vertices" if proportion else "Value")
    ax.set_title(title)
    ax.legend(fontsize=8)
    fig.tight_layout()
    return fig
