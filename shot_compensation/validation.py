"""
Independent Checks of a Solved Angle
====================================
Two ways to cross-check the closed-form solvers:

1. **Numerical flight** — integrate the equations of motion each drag model
   is derived from with 4th-order Runge-Kutta and read the simulated height
   where the shot crosses the target distance:
       vx' = -k1 vx²
       vy' = model law (see drag_model.py)

2. **Root-found reference** — solve height(t(x, θ), θ) = y for θ directly
   with Brent's method, bypassing the fixed-point iteration.
"""

from dataclasses import dataclass

import numpy as np
from scipy.optimize import brentq

from .drag_model import DragModel
from .exceptions import CompensationError
from .shot import TargetOffset, LaunchParameters
from .solver import CompensationResult


@dataclass
class ShotTrace:
    """Simulated flight of one shot, arrays of shape (N,)."""
    model: str
    pitch_rad: float
    time: np.ndarray
    x: np.ndarray
    y: np.ndarray
    vx: np.ndarray
    vy: np.ndarray

    @property
    def flight_time(self) -> float:
        return float(self.time[-1])

    @property
    def max_height(self) -> float:
        return float(np.max(self.y))

    def height_at(self, x: float) -> float:
        """Height (m) where the shot crosses horizontal distance x."""
        if x > self.x[-1]:
            raise CompensationError(
                f"Simulated shot stopped at x={self.x[-1]:.3f} m, before x={x}"
            )
        return float(np.interp(x, self.x, self.y))


@dataclass
class ShotCheck:
    """Closed-form prediction vs numerical flight at the target distance."""
    target: TargetOffset
    predicted_y: float     # closed-form height at target.x (m)
    simulated_y: float     # RK4 height at target.x (m)

    @property
    def miss(self) -> float:
        """Vertical miss of the simulated shot (m), positive = shot lands low."""
        return self.target.y - self.simulated_y

    @property
    def model_error(self) -> float:
        return self.predicted_y - self.simulated_y


# ══════════════════════════════════════════════════════════════════════════
#  RK4 flight simulation
# ══════════════════════════════════════════════════════════════════════════

def simulate_shot(pitch_rad: float, params: LaunchParameters, model: DragModel,
                  x_max: float, dt: float = 1e-3,
                  max_time: float = 60.0) -> ShotTrace:
    """
    Integrate the shot until it passes x_max (or max_time elapses).

    Same RK4 stage layout as a rigid-body trajectory integrator, reduced
    to the planar point mass the drag formulas assume.
    """
    pos = np.zeros(2)
    vel = params.velocity * np.array([np.cos(pitch_rad), np.sin(pitch_rad)])
    t = 0.0

    history = [(t, pos.copy(), vel.copy())]

    def accel(v):
        return np.array([
            -params.k1 * v[0] * v[0],
            model.vertical_acceleration(v[1], params),
        ])

    while pos[0] < x_max and t < max_time:
        k1v = accel(vel)
        k1x = vel

        k2v = accel(vel + 0.5 * dt * k1v)
        k2x = vel + 0.5 * dt * k1v

        k3v = accel(vel + 0.5 * dt * k2v)
        k3x = vel + 0.5 * dt * k2v

        k4v = accel(vel + dt * k3v)
        k4x = vel + dt * k3v

        pos = pos + (dt / 6.0) * (k1x + 2*k2x + 2*k3x + k4x)
        vel = vel + (dt / 6.0) * (k1v + 2*k2v + 2*k3v + k4v)
        t += dt

        history.append((t, pos.copy(), vel.copy()))

    times, positions, velocities = zip(*history)
    positions = np.array(positions)
    velocities = np.array(velocities)

    return ShotTrace(
        model=model.key,
        pitch_rad=pitch_rad,
        time=np.array(times),
        x=positions[:, 0],
        y=positions[:, 1],
        vx=velocities[:, 0],
        vy=velocities[:, 1],
    )


def verify_compensation(result: CompensationResult,
                        dt: float = 1e-3) -> ShotCheck:
    """Fly the solved shot numerically and compare against the target."""
    model = DragModel(result.model)
    trace = simulate_shot(result.pitch_rad, result.params, model,
                          x_max=result.target.x, dt=dt)
    with np.errstate(all='ignore'):
        predicted = float(model.predict(result.target.x, result.pitch_rad,
                                        result.params))
    return ShotCheck(
        target=result.target,
        predicted_y=predicted,
        simulated_y=trace.height_at(result.target.x),
    )


# ══════════════════════════════════════════════════════════════════════════
#  Root-found reference angle
# ══════════════════════════════════════════════════════════════════════════

def reference_compensation(target: TargetOffset, params: LaunchParameters,
                           model: DragModel, bracket=(-0.25, 0.25),
                           xtol: float = 1e-12) -> float:
    """
    Compensation angle (rad) solving the model's height equation exactly.

    `bracket` bounds the compensation; the height error must change sign
    across it, otherwise scipy raises ValueError.
    """
    theta_0 = target.elevation

    def height_error(compensation):
        with np.errstate(all='ignore'):
            return float(model.predict(target.x, theta_0 + compensation,
                                       params)) - target.y

    return brentq(height_error, bracket[0], bracket[1], xtol=xtol)
