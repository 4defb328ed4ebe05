"""MCMC trace, density and autocorrelation plots.

Statistics are plotted as deviations from the observed value, so a
well-mixed converged chain fluctuates around zero.
"""

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from netergm.visualization.style import ENVELOPE_COLOR, OBSERVED_COLOR, SIMULATED_COLOR


def plot_mcmc_traces(
    statistics: np.ndarray,
    observed: np.ndarray,
    labels: list[str],
) -> plt.Figure:
    """One row per term: trace (left) and density (right) of g(Y) - g(y_obs).

    Args:
        statistics: Chain draws, shape (n_draws, n_terms).
        observed: Observed statistics, shape (n_terms,).
        labels: Term labels.

    Returns:
        The matplotlib Figure.
    """
    n_terms = len(labels)
    fig, axes = plt.subplots(
        n_terms, 2, figsize=(11, 2.2 * n_terms), squeeze=False,
        gridspec_kw={"width_ratios": [3, 1]},
    )
    deviations = statistics - observed[None, :]
    draws = np.arange(statistics.shape[0])

    for k, label in enumerate(labels):
        ax_trace, ax_density = axes[k]
        ax_trace.plot(draws, deviations[:, k], color=SIMULATED_COLOR, linewidth=0.6)
        ax_trace.axhline(0.0, color=OBSERVED_COLOR, linestyle="--", linewidth=1)
        ax_trace.set_ylabel(label, fontsize=9)

        if np.ptp(deviations[:, k]) > 0:
            sns.kdeplot(
                y=deviations[:, k], ax=ax_density, color=SIMULATED_COLOR, fill=True
            )
        else:
            ax_density.text(
                0.5, 0.5, "constant", transform=ax_density.transAxes,
                ha="center", va="center", color=ENVELOPE_COLOR,
            )
        ax_density.axhline(0.0, color=OBSERVED_COLOR, linestyle="--", linewidth=1)
        ax_density.set_xlabel("")

    axes[-1][0].set_xlabel("Draw")
    axes[0][0].set_title("Chain statistics minus observed")
    axes[0][1].set_title("Density")
    fig.tight_layout()
    return fig


def plot_autocorrelation(acf: dict[str, np.ndarray]) -> plt.Figure:
    """Autocorrelation by lag for each term, overlaid."""
    fig, ax = plt.subplots(figsize=(7, 4))
    for k, (label, values) in enumerate(acf.items()):
        lags = np.arange(len(values))
        ax.plot(
            lags, values, marker="o", markersize=3, linewidth=1.2,
            color=sns.color_palette("colorblind", n_colors=max(len(acf), 1))[k],
            label=label,
        )
    ax.axhline(0.0, color=ENVELOPE_COLOR, linewidth=0.8)
    ax.set_xlabel("Lag (draws)")
    ax.set_ylabel("Autocorrelation")
    ax.set_title("Chain autocorrelation")
    if acf:
        ax.legend(fontsize=8)
    fig.tight_layout()
    return fig
