"""Matplotlib figures for sweep results.

  - plot_phase_diagram:      classification map with a category legend
  - plot_female_frequency:   heatmap of equilibrium female frequency

Both follow the dark theme used across the project's figures.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use('Agg')

import matplotlib.colors as mcolors
import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np

from dioecy_evo.render import STATE_COLORS
from dioecy_evo.sweep import SweepResult, axis_values
from dioecy_evo.types import EquilibriumState

# ═══════════════════════════════════════════════════════════════════════
# THEME
# ═══════════════════════════════════════════════════════════════════════

DARK_BG = '#1a1a2e'
DARK_PANEL = '#16213e'
TEXT_COLOR = '#e0e0e0'
GRID_COLOR = '#2a2a4a'

STATE_DESCRIPTIONS = {
    EquilibriumState.NONE: 'undetermined',
    EquilibriumState.PGD: 'PGD (female + inconstant)',
    EquilibriumState.SSD: 'SSD (all three)',
    EquilibriumState.DIO: 'DIO (female + male)',
    EquilibriumState.PAD: 'PAD (male + inconstant)',
    EquilibriumState.INC: 'INC (inconstant only)',
}


def apply_dark_theme(fig=None, ax=None):
    """Apply dark theme to a matplotlib Figure and/or Axes."""
    if fig is not None:
        fig.patch.set_facecolor(DARK_BG)
    if ax is not None:
        ax.set_facecolor(DARK_PANEL)
        ax.tick_params(colors=TEXT_COLOR)
        ax.xaxis.label.set_color(TEXT_COLOR)
        ax.yaxis.label.set_color(TEXT_COLOR)
        ax.title.set_color(TEXT_COLOR)
        for spine in ax.spines.values():
            spine.set_color(GRID_COLOR)


def dark_figure(figsize=(7, 6)):
    """Create a Figure + Axes with the dark theme already applied."""
    fig, ax = plt.subplots(figsize=figsize)
    apply_dark_theme(fig=fig, ax=ax)
    return fig, ax


def save_figure(fig, save_path, dpi=150):
    """Save a figure with tight layout and dark background."""
    fig.tight_layout()
    fig.savefig(save_path, dpi=dpi, facecolor=fig.get_facecolor(),
                edgecolor='none', bbox_inches='tight')
    plt.close(fig)


def _state_cmap() -> mcolors.ListedColormap:
    colors = [
        tuple(c / 255.0 for c in STATE_COLORS[state])
        for state in EquilibriumState
    ]
    return mcolors.ListedColormap(colors)


def _extent(result: SweepResult):
    s = result.config.sweep
    values = axis_values(s.subdivisions, s.axes, s.axis_limit)
    return [values[0], values[-1], values[0], values[-1]]


def _axis_names(result: SweepResult):
    return ('K', 'k') if result.config.sweep.axes == 'Kk' else ('Q', 'F')


# ═══════════════════════════════════════════════════════════════════════
# FIGURES
# ═══════════════════════════════════════════════════════════════════════


def plot_phase_diagram(
    result: SweepResult,
    save_path: Optional[Union[str, Path]] = None,
    title: Optional[str] = None,
):
    """Classification map over the parameter plane.

    Returns the Figure when ``save_path`` is None, otherwise saves and
    closes it and returns None.
    """
    fig, ax = dark_figure()
    n_states = len(EquilibriumState)
    ax.imshow(
        result.states,
        origin='lower',
        cmap=_state_cmap(),
        vmin=-0.5,
        vmax=n_states - 0.5,
        interpolation='nearest',
        extent=_extent(result),
        aspect='auto',
    )
    x_name, y_name = _axis_names(result)
    ax.set_xlabel(x_name)
    ax.set_ylabel(y_name)
    ax.set_title(title or f"Model {result.config.model.variant} equilibria")

    present = set(np.unique(result.states).tolist())
    handles = [
        mpatches.Patch(
            facecolor=tuple(c / 255.0 for c in STATE_COLORS[state]),
            edgecolor=GRID_COLOR,
            label=STATE_DESCRIPTIONS[state],
        )
        for state in EquilibriumState
        if int(state) in present
    ]
    legend = ax.legend(handles=handles, loc='upper left', fontsize=8,
                       facecolor=DARK_PANEL, edgecolor=GRID_COLOR)
    for text in legend.get_texts():
        text.set_color(TEXT_COLOR)

    if save_path is None:
        return fig
    save_figure(fig, save_path)
    return None


def plot_female_frequency(
    result: SweepResult,
    save_path: Optional[Union[str, Path]] = None,
):
    """Heatmap of the equilibrium female frequency."""
    fig, ax = dark_figure()
    im = ax.imshow(
        result.female,
        origin='lower',
        cmap='magma',
        vmin=0.0,
        vmax=max(float(np.max(result.female)), 1e-12),
        extent=_extent(result),
        aspect='auto',
    )
    cbar = fig.colorbar(im, ax=ax)
    cbar.set_label('female frequency', color=TEXT_COLOR)
    cbar.ax.tick_params(colors=TEXT_COLOR)
    x_name, y_name = _axis_names(result)
    ax.set_xlabel(x_name)
    ax.set_ylabel(y_name)
    ax.set_title('Equilibrium female frequency')

    if save_path is None:
        return fig
    save_figure(fig, save_path)
    return None
