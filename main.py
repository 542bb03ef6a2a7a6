#!/usr/bin/env python3
"""
═══════════════════════════════════════════════════════════════════════════════
  BALLISTIC COMPENSATION SOLVER — Main Runner
═══════════════════════════════════════════════════════════════════════════════

  Walks through the solver family:
    1. Drag model height predictions along the line of sight
    2. Compensation for a reference target with every model
    3. Automatic shoot-up / shoot-down selection
    4. RK4 flight check of the solved angles
    5. k1 calibration
    6. Convergence, trajectory and compensation-vs-distance plots

  Plots are saved to outputs/.

  Usage:
    python main.py              # Run everything
    python main.py --quick      # Skip plots
    python main.py --verbose    # Log every refinement round
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import os
import sys
import time

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from shot_compensation import (
    DEFAULT_K1, DragModel, ALL_MODELS, TargetOffset, LaunchParameters,
    CompensationError, select_model, solve, simulate_shot, verify_compensation,
    reference_compensation, air_density, k1_from_projectile, calibrate_k1,
)
from shot_compensation.visualization import (
    plot_convergence, plot_trajectories, plot_compensation_vs_range,
    ensure_output_dir,
)

import matplotlib.pyplot as plt


def section(title):
    print(f"\n{'─'*60}")
    print(f"  {title}")
    print(f"{'─'*60}")


def save_plots(results, target, params, out='outputs'):
    """Write the convergence, trajectory and compensation-vs-distance plots."""
    out = ensure_output_dir(out)
    saved = []

    if 'auto' in results:
        fig = plot_convergence(results['auto'], save_path=f'{out}/01_convergence.png')
        plt.close(fig)
        saved.append(f'{out}/01_convergence.png')

    traces = {
        DragModel(r.model).name + f" [{key}]": simulate_shot(
            r.pitch_rad, r.params, DragModel(r.model), x_max=target.x)
        for key, r in results.items()
    }
    fig = plot_trajectories(traces, target, save_path=f'{out}/02_trajectories.png')
    plt.close(fig)
    saved.append(f'{out}/02_trajectories.png')

    fig = plot_compensation_vs_range(np.linspace(1.0, 25.0, 49), 0.5, params.velocity,
                                     params.k1,
                                     save_path=f'{out}/03_compensation_vs_range.png')
    plt.close(fig)
    saved.append(f'{out}/03_compensation_vs_range.png')

    for path in saved:
        print(f"  ✓ Saved: {path}")
    return saved


def main():
    start_time = time.time()
    quick = '--quick' in sys.argv
    verbose = '--verbose' in sys.argv

    if verbose:
        logging.basicConfig(level=logging.INFO,
                            format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    velocity = 30.0
    target = TargetOffset(x=10.0, y=3.0)
    params = LaunchParameters(velocity)

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 1: Height predictions along the line of sight
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 1: Height at Target Distance (No Compensation)")
    print(f"  Target x={target.x} m y={target.y} m  v₀={velocity} m/s  k1={params.k1}")
    for key in ALL_MODELS:
        model = DragModel(key)
        with np.errstate(all='ignore'):
            y_pred = float(model.predict(target.x, target.elevation, params))
        print(f"  {model.name:<28s}  y(x) = {y_pred:>9.4f} m")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 2: Every model on the reference target
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 2: Compensation per Model")
    results = {}
    for key in ('x', 'xy_simplified', 'xy_ascending', 'xy_descending', 'auto'):
        try:
            result = solve(target.x, target.y, velocity, key, diagnostics=verbose)
        except CompensationError as e:
            print(f"  {key:<15s}  rejected: {e}")
            continue
        results[key] = result
        print(result.summary())

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 3: Shoot-up / shoot-down selection
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 3: Automatic Phase Selection")
    for x, y, v0 in [(10.0, 3.0, 30.0), (100.0, 5.0, 300.0), (100.0, -5.0, 300.0)]:
        chosen = select_model(TargetOffset(x, y), LaunchParameters(v0))
        result = solve(x, y, v0)
        fallback = f"  (fallback from {result.fallback_from})" if result.fallback_from else ""
        print(f"  x={x:>6.1f} y={y:>6.1f} v₀={v0:>6.1f}  selector={chosen:<14s} "
              f"solved={result.model:<14s} comp={result.compensation_deg:>+8.4f}°{fallback}")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 4: RK4 flight check
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 4: RK4 Flight Check")
    print(f"  {'Model':<15s} {'Predicted':>10s} {'Simulated':>10s} {'Miss':>10s} {'Reference Δ':>12s}")
    for key, result in results.items():
        check = verify_compensation(result)
        try:
            ref = reference_compensation(result.target, result.params,
                                         DragModel(result.model))
            ref_delta = f"{result.compensation_rad - ref:>+12.2e}"
        except ValueError:
            ref_delta = f"{'n/a':>12s}"
        print(f"  {key:<15s} {check.predicted_y:>10.5f} {check.simulated_y:>10.5f} "
              f"{check.miss:>+10.2e} {ref_delta}")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 5: k1 calibration
    # ══════════════════════════════════════════════════════════════════════
    section("PHASE 5: Drag Coefficient Calibration")
    k1_ball = k1_from_projectile(mass=0.0032, diameter=0.0168, drag_coefficient=0.47,
                                 density=air_density(0.0))
    print(f"  17 mm ball, Cd=0.47, sea level    k1 = {k1_ball:.5f} 1/m")
    print(f"  Default k1                        k1 = {DEFAULT_K1:.5f} 1/m")
    observed_y = float(DragModel('x').predict(target.x, 0.35, params))
    recovered = calibrate_k1(velocity, 0.35, target.x, observed_y)
    print(f"  Recovered from a simulated hit    k1 = {recovered:.5f} 1/m")

    # ══════════════════════════════════════════════════════════════════════
    #  PHASE 6: Plots
    # ══════════════════════════════════════════════════════════════════════
    if not quick:
        section("PHASE 6: Plots")
        save_plots(results, target, params)
    else:
        section("PHASE 6: Plots SKIPPED (--quick mode)")

    elapsed = time.time() - start_time
    section("COMPLETE")
    print(f"  Total runtime: {elapsed:.1f} seconds")


if __name__ == "__main__":
    main()
