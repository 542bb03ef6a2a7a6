"""
Compensation Angle Solver
=========================
Fixed-point refinement of the aiming angle:

1. Aim at a working target point (x, temp_y), starting at the real target.
2. Predict the height the shot reaches at x under the chosen drag model.
3. Move the working target by the height error delta_H = y - real_y.
4. Re-aim: compensation = atan(temp_y / x) - atan(y / x).

The loop runs a fixed number of rounds with no early exit. After the loop
the height error at the returned angle is evaluated once more, and that
residual decides `converged`.

Entry points:
    compensation_x_resistance              x-only drag
    compensation_xy_resistance1_shootup    xy drag, drag-free fall after apex
    compensation_xy_resistance2_shootup    xy drag, rising + falling drag
    compensation_xy_resistance2_shootdown  xy drag, downward shot
    compensation_xy_resistance2            picks shoot-up / shoot-down itself
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from .constants import (
    PI, DEFAULT_GRAVITY, DEFAULT_K1, DEFAULT_ITERATIONS, DEFAULT_TOLERANCE,
)
from .drag_model import DragModel, descending_domain_ratio
from .exceptions import (
    InvalidParametersError, ShotDirectionError, TrajectoryDomainError,
)
from .logger import logger
from .shot import TargetOffset, LaunchParameters


@dataclass(frozen=True)
class IterationRecord:
    """State after one refinement round."""
    iteration: int
    temp_y: float           # working target height (m)
    delta_h: float          # height error of the angle used this round (m)
    compensation_rad: float
    pitch_rad: float

    @property
    def compensation_deg(self) -> float:
        return self.compensation_rad * 180 / PI

    @property
    def pitch_deg(self) -> float:
        return self.pitch_rad * 180 / PI

    def describe(self) -> str:
        return (f"i={self.iteration} temp_y={self.temp_y:.6f} "
                f"delta_H={self.delta_h:.6f} "
                f"compensation_rad={self.compensation_rad:.6f}"
                f"={self.compensation_deg:.4f}degree "
                f"pitch={self.pitch_rad:.6f}={self.pitch_deg:.4f}degree")


IterationSink = Callable[[IterationRecord], None]


@dataclass
class CompensationResult:
    """Solved compensation angle with its iteration history."""
    model: str
    target: TargetOffset
    params: LaunchParameters
    compensation_rad: float
    residual: float           # height error at the returned angle (m)
    tolerance: float
    iterations: List[IterationRecord] = field(default_factory=list)
    fallback_from: Optional[str] = None

    @property
    def pitch_rad(self) -> float:
        """Final launch angle = line of sight + compensation."""
        return self.target.elevation + self.compensation_rad

    @property
    def compensation_deg(self) -> float:
        return self.compensation_rad * 180 / PI

    @property
    def pitch_deg(self) -> float:
        return self.pitch_rad * 180 / PI

    @property
    def converged(self) -> bool:
        return abs(self.residual) <= self.tolerance

    def summary(self) -> str:
        """Human-readable summary string."""
        status = "CONVERGED" if self.converged else "ITERATIONS EXHAUSTED"
        lines = [
            f"╔══════════════════════════════════════════════════════╗",
            f"║  COMPENSATION — {DragModel(self.model).name:<36s} ║",
            f"╠══════════════════════════════════════════════════════╣",
            f"║  Target       : x={self.target.x:>9.2f} m  y={self.target.y:>9.2f} m{'':<7s} ║",
            f"║  Muzzle vel   : {self.params.velocity:>10.1f} m/s{'':<22s} ║",
            f"║  k1           : {self.params.k1:>10.5f} 1/m{'':<22s} ║",
            f"╠══════════════════════════════════════════════════════╣",
            f"║  Compensation : {self.compensation_rad:>+10.6f} rad ({self.compensation_deg:>+8.4f}°){'':<6s} ║",
            f"║  Pitch        : {self.pitch_rad:>+10.6f} rad ({self.pitch_deg:>+8.4f}°){'':<6s} ║",
            f"║  Residual     : {self.residual:>+10.2e} m{'':<24s} ║",
            f"║  Rounds       : {len(self.iterations):>10d}{'':<26s} ║",
            f"║  Status       : {status:<36s} ║",
            f"╚══════════════════════════════════════════════════════╝",
        ]
        return '\n'.join(lines)


# ══════════════════════════════════════════════════════════════════════════
#  Fixed-point angle refiner
# ══════════════════════════════════════════════════════════════════════════

def _predicted_height(model: DragModel, target: TargetOffset,
                      params: LaunchParameters, pitch: float) -> float:
    with np.errstate(all='ignore'):
        return float(model.predict(target.x, pitch, params))


def refine(target: TargetOffset, params: LaunchParameters,
           model: DragModel, max_iterations: int = DEFAULT_ITERATIONS,
           tolerance: float = DEFAULT_TOLERANCE, diagnostics: bool = False,
           sink: Optional[IterationSink] = None) -> CompensationResult:
    """
    Refine the compensation angle for `max_iterations` rounds.

    Parameters
    ----------
    target : TargetOffset
    params : LaunchParameters
    model : DragModel
        Height prediction used for every round.
    max_iterations : int
        Exact number of rounds, >= 1.
    tolerance : float
        |residual| (m) at which the result counts as converged.
    diagnostics : bool
        Log one INFO line per round on the package logger.
    sink : callable, optional
        Receives every IterationRecord.

    Raises
    ------
    TrajectoryDomainError
        A round produced a non-finite height.
    ShotDirectionError
        The final angle is outside the phase the model describes. Carries
        the residual and whether the refinement had converged.
    """
    if isinstance(max_iterations, bool) \
            or not isinstance(max_iterations, numbers.Integral) \
            or max_iterations < 1:
        raise InvalidParametersError(
            f"max_iterations must be a positive integer, got {max_iterations!r}"
        )
    if not tolerance >= 0:
        raise InvalidParametersError(f"tolerance must be >= 0, got {tolerance}")

    theta_0 = target.elevation
    temp_y = target.y
    compensation = 0.0
    history = []

    for i in range(max_iterations):
        pitch = theta_0 + compensation
        real_y = _predicted_height(model, target, params, pitch)
        if not math.isfinite(real_y):
            raise TrajectoryDomainError(model.key, i, pitch)

        delta_h = target.y - real_y
        temp_y += delta_h
        compensation = math.atan(temp_y / target.x) - theta_0

        record = IterationRecord(
            iteration=i,
            temp_y=temp_y,
            delta_h=delta_h,
            compensation_rad=compensation,
            pitch_rad=theta_0 + compensation,
        )
        history.append(record)
        if diagnostics and logger.isEnabledFor(logging.INFO):
            logger.info(record.describe())
        if sink is not None:
            sink(record)

    pitch = theta_0 + compensation
    real_y = _predicted_height(model, target, params, pitch)
    if not math.isfinite(real_y):
        raise TrajectoryDomainError(model.key, max_iterations, pitch)

    residual = target.y - real_y
    reason = model.direction_violation(pitch, compensation)
    if reason is not None:
        raise ShotDirectionError(model.key, pitch, compensation, reason,
                                 residual=residual,
                                 converged=abs(residual) <= tolerance)

    return CompensationResult(
        model=model.key,
        target=target,
        params=params,
        compensation_rad=compensation,
        residual=residual,
        tolerance=tolerance,
        iterations=history,
    )


# ══════════════════════════════════════════════════════════════════════════
#  Model selector — shoot-up or shoot-down
# ══════════════════════════════════════════════════════════════════════════

def select_model(target: TargetOffset, params: LaunchParameters) -> str:
    """
    Classify the shot from one descending-formula prediction along the
    line of sight.

    If the uncorrected shot would land above the target the aim has to
    come down ('xy_descending'); otherwise it goes up ('xy_ascending').
    A line of sight outside the descending formula's domain is always a
    shoot-up.
    """
    theta_0 = target.elevation
    ratio = descending_domain_ratio(theta_0, params.velocity,
                                    params.gravity, params.k1)
    if abs(ratio) >= 1:
        return 'xy_ascending'

    trial_y = _predicted_height(DragModel('xy_descending'), target, params,
                                theta_0)
    if trial_y > target.y:
        return 'xy_descending'
    return 'xy_ascending'


def solve_auto(target: TargetOffset, params: LaunchParameters,
               max_iterations: int = DEFAULT_ITERATIONS,
               tolerance: float = DEFAULT_TOLERANCE, diagnostics: bool = False,
               sink: Optional[IterationSink] = None) -> CompensationResult:
    """
    Dispatch to the phase picked by select_model. A shot the chosen phase
    cannot describe is retried with the other one.
    """
    chosen = select_model(target, params)
    other = 'xy_ascending' if chosen == 'xy_descending' else 'xy_descending'
    options = dict(max_iterations=max_iterations, tolerance=tolerance,
                   diagnostics=diagnostics, sink=sink)

    try:
        return refine(target, params, DragModel(chosen), **options)
    except ShotDirectionError as first_error:
        if first_error.converged:
            logger.debug(f"{chosen} rejected the shot ({first_error}); trying {other}")
        else:
            logger.debug(f"{chosen} stopped unconverged on the wrong side "
                         f"(residual={first_error.residual:.6g} m); trying {other}")
        try:
            result = refine(target, params, DragModel(other), **options)
        except (ShotDirectionError, TrajectoryDomainError):
            raise first_error
        result.fallback_from = chosen
        return result


# ══════════════════════════════════════════════════════════════════════════
#  Public entry points
# ══════════════════════════════════════════════════════════════════════════

SOLVER_MODELS = ('auto', 'x', 'xy_simplified', 'xy_ascending', 'xy_descending')


def solve(x: float, y: float, velocity: float, model: str = 'auto',
          diagnostics: bool = False, max_iterations: int = DEFAULT_ITERATIONS,
          gravity: float = DEFAULT_GRAVITY, k1: float = DEFAULT_K1,
          tolerance: float = DEFAULT_TOLERANCE,
          sink: Optional[IterationSink] = None) -> CompensationResult:
    """Solve the compensation angle for target (x, y) with full result."""
    if model not in SOLVER_MODELS:
        raise ValueError(f"Unknown solver model '{model}'. Available: {list(SOLVER_MODELS)}")

    target = TargetOffset(x, y)
    params = LaunchParameters(velocity, gravity=gravity, k1=k1)
    if model == 'auto':
        return solve_auto(target, params, max_iterations=max_iterations,
                          tolerance=tolerance, diagnostics=diagnostics, sink=sink)
    return refine(target, params, DragModel(model),
                  max_iterations=max_iterations, tolerance=tolerance,
                  diagnostics=diagnostics, sink=sink)


def compensation_x_resistance(x: float, y: float, velocity: float,
                              diagnostics: bool = False,
                              max_iterations: int = DEFAULT_ITERATIONS,
                              gravity: float = DEFAULT_GRAVITY,
                              k1: float = DEFAULT_K1) -> float:
    """Compensation angle (rad) with drag acting on horizontal motion only."""
    return solve(x, y, velocity, 'x', diagnostics, max_iterations,
                 gravity, k1).compensation_rad


def compensation_xy_resistance1_shootup(x: float, y: float, velocity: float,
                                        diagnostics: bool = False,
                                        max_iterations: int = DEFAULT_ITERATIONS,
                                        gravity: float = DEFAULT_GRAVITY,
                                        k1: float = DEFAULT_K1) -> float:
    """Upward shot; drag while rising, drag-free fall after the apex."""
    return solve(x, y, velocity, 'xy_simplified', diagnostics, max_iterations,
                 gravity, k1).compensation_rad


def compensation_xy_resistance2_shootup(x: float, y: float, velocity: float,
                                        diagnostics: bool = False,
                                        max_iterations: int = DEFAULT_ITERATIONS,
                                        gravity: float = DEFAULT_GRAVITY,
                                        k1: float = DEFAULT_K1) -> float:
    """Upward shot with drag on both the rising and the falling branch."""
    return solve(x, y, velocity, 'xy_ascending', diagnostics, max_iterations,
                 gravity, k1).compensation_rad


def compensation_xy_resistance2_shootdown(x: float, y: float, velocity: float,
                                          diagnostics: bool = False,
                                          max_iterations: int = DEFAULT_ITERATIONS,
                                          gravity: float = DEFAULT_GRAVITY,
                                          k1: float = DEFAULT_K1) -> float:
    """Downward shot below terminal velocity with full xy drag."""
    return solve(x, y, velocity, 'xy_descending', diagnostics, max_iterations,
                 gravity, k1).compensation_rad


def compensation_xy_resistance2(x: float, y: float, velocity: float,
                                diagnostics: bool = False,
                                max_iterations: int = DEFAULT_ITERATIONS,
                                gravity: float = DEFAULT_GRAVITY,
                                k1: float = DEFAULT_K1) -> float:
    """Full xy drag; shoot-up or shoot-down picked by select_model."""
    return solve(x, y, velocity, 'auto', diagnostics, max_iterations,
                 gravity, k1).compensation_rad
