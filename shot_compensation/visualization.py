"""
Visualization
=============
Plots for inspecting the solvers:
  1. Convergence of the height error per round
  2. Simulated trajectories of solved shots
  3. Compensation angle vs target distance for every drag model
"""

import os
from typing import Dict, Optional, Sequence

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from .drag_model import ALL_MODELS
from .exceptions import CompensationError
from .shot import TargetOffset
from .solver import CompensationResult, solve
from .validation import ShotTrace


# ── Style Configuration ───────────────────────────────────────────────────
STYLE = {
    'bg_color': '#0a0a0a',
    'text_color': '#e0e0e0',
    'grid_color': '#333333',
    'accent_colors': ['#00d4ff', '#ff6b35', '#00e676', '#ffeb3b',
                      '#e040fb', '#ff5252'],
}


def _apply_dark_style(fig, axes):
    """Apply consistent dark theme to figure and axes."""
    fig.patch.set_facecolor(STYLE['bg_color'])
    if not isinstance(axes, np.ndarray):
        axes = [axes]
    else:
        axes = axes.flatten()

    for ax in axes:
        ax.set_facecolor(STYLE['bg_color'])
        ax.tick_params(colors=STYLE['text_color'])
        ax.xaxis.label.set_color(STYLE['text_color'])
        ax.yaxis.label.set_color(STYLE['text_color'])
        ax.title.set_color(STYLE['text_color'])
        ax.grid(True, color=STYLE['grid_color'], alpha=0.4, linewidth=0.5)
        for spine in ax.spines.values():
            spine.set_color(STYLE['grid_color'])


def _legend(ax):
    ax.legend(fontsize=9, facecolor='#1a1a1a', edgecolor='#444',
              labelcolor=STYLE['text_color'])


def _finish(fig, save_path):
    fig.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight',
                    facecolor=STYLE['bg_color'])
    return fig


def ensure_output_dir(path: str = 'outputs'):
    os.makedirs(path, exist_ok=True)
    return path


# ══════════════════════════════════════════════════════════════════════════
#  1. Convergence
# ══════════════════════════════════════════════════════════════════════════

def plot_convergence(result: CompensationResult,
                     save_path: Optional[str] = None) -> plt.Figure:
    """|delta_H| and pitch per round of one solve."""
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))
    _apply_dark_style(fig, axes)
    ax_err, ax_pitch = axes

    rounds = [r.iteration for r in result.iterations]
    errors = [max(abs(r.delta_h), 1e-16) for r in result.iterations]
    pitches = [r.pitch_deg for r in result.iterations]

    ax_err.semilogy(rounds, errors, 'o-', color=STYLE['accent_colors'][0],
                    linewidth=2)
    ax_err.axhline(y=result.tolerance, color='#ff5252', linestyle='--',
                   alpha=0.7, label=f'tolerance {result.tolerance:g} m')
    ax_err.set_xlabel('Round')
    ax_err.set_ylabel('|ΔH| (m)')
    ax_err.set_title('Height Error per Round', fontweight='bold')
    _legend(ax_err)

    ax_pitch.plot(rounds, pitches, 's-', color=STYLE['accent_colors'][1],
                  linewidth=2)
    ax_pitch.axhline(y=np.degrees(result.target.elevation), color='#888',
                     linestyle=':', label='line of sight')
    ax_pitch.set_xlabel('Round')
    ax_pitch.set_ylabel('Pitch (°)')
    ax_pitch.set_title(f'Pitch Estimate — {result.model}', fontweight='bold')
    _legend(ax_pitch)

    return _finish(fig, save_path)


# ══════════════════════════════════════════════════════════════════════════
#  2. Trajectories
# ══════════════════════════════════════════════════════════════════════════

def plot_trajectories(traces: Dict[str, ShotTrace], target: TargetOffset,
                      save_path: Optional[str] = None) -> plt.Figure:
    """Side view of simulated shots, keyed by label."""
    fig, ax = plt.subplots(figsize=(12, 6))
    _apply_dark_style(fig, ax)

    for i, (label, trace) in enumerate(traces.items()):
        style = ALL_MODELS.get(trace.model, {})
        ax.plot(trace.x, trace.y, linewidth=2, label=label,
                color=style.get('color', STYLE['accent_colors'][i % 6]),
                linestyle=style.get('linestyle', '-'))

    ax.plot([0, target.x], [0, target.y], ':', color='#888', label='Line of sight')
    ax.plot(target.x, target.y, 'x', color='#ff5252', markersize=12,
            markeredgewidth=3, label='Target', zorder=5)
    ax.set_xlabel('Horizontal distance (m)', fontsize=12)
    ax.set_ylabel('Height (m)', fontsize=12)
    ax.set_title('Solved Shots (RK4 flight)', fontsize=13, fontweight='bold')
    _legend(ax)

    return _finish(fig, save_path)


# ══════════════════════════════════════════════════════════════════════════
#  3. Compensation vs distance
# ══════════════════════════════════════════════════════════════════════════

def plot_compensation_vs_range(ranges: Sequence[float], height: float,
                               velocity: float, k1: float,
                               models: Sequence[str] = ('x', 'xy_simplified', 'auto'),
                               save_path: Optional[str] = None) -> plt.Figure:
    """Compensation angle against target distance at a fixed target height."""
    fig, ax = plt.subplots(figsize=(12, 6))
    _apply_dark_style(fig, ax)

    for i, key in enumerate(models):
        angles = []
        for x in ranges:
            try:
                angles.append(np.degrees(solve(x, height, velocity, key, k1=k1).compensation_rad))
            except CompensationError:
                angles.append(np.nan)
        style = ALL_MODELS.get(key, {})
        ax.plot(ranges, angles, linewidth=2,
                color=style.get('color', STYLE['accent_colors'][i % 6]),
                linestyle=style.get('linestyle', '-'),
                label=style.get('name', key))

    ax.set_xlabel('Target distance (m)', fontsize=12)
    ax.set_ylabel('Compensation (°)', fontsize=12)
    ax.set_title(f'Compensation vs Distance (y={height:g} m, v₀={velocity:g} m/s, '
                 f'k1={k1:g})', fontsize=13, fontweight='bold')
    _legend(ax)

    return _finish(fig, save_path)
