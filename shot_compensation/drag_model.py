"""
Trajectory Drag Models
======================
Closed-form height predictions for a shot under quadratic air drag.

Horizontal motion always uses the x-only drag law
    vx' = -k1 vx²   =>   t(x) = (e^{k1 x} - 1) / (k1 v0 cos θ)
so every model shares one time-of-flight formula. The models differ in how
they treat vertical motion:

- x-only drag        vy' = -g
- xy simplified      vy' = -g - k1 vy² while rising, drag-free fall after apex
- xy ascending       vy' = -g - k1 vy|vy|, launched upwards
- xy descending      vy' = -g + k1 vy², launched downwards

With s = sqrt(k1 g) the rising branch integrates to
    y(t) = ln(cos(s(C - t)) / cos(s C)) / k1,   C = atan(sqrt(k1/g) v0 sin θ) / s
where C is the time to apex, and the falling branch to the terminal-velocity
solution. The evaluators do no validation; out-of-domain input yields
NaN/inf, which the solver reports.
"""

import numpy as np

from .shot import LaunchParameters


# ══════════════════════════════════════════════════════════════════════════
#  Time of flight — shared horizontal law
# ══════════════════════════════════════════════════════════════════════════

def flight_time(x, theta, velocity: float, k1: float):
    """Time (s) to cover horizontal distance x at launch angle theta."""
    vx0 = velocity * np.cos(theta)
    if k1 == 0:
        return x / vx0
    return np.expm1(k1 * x) / (k1 * vx0)


# ══════════════════════════════════════════════════════════════════════════
#  Height formulas — y(t) for launch angle theta
# ══════════════════════════════════════════════════════════════════════════

def x_resistance_height(t, theta, velocity: float, gravity: float, k1: float):
    """Vertical motion unaffected by drag: v0 sinθ t - ½ g t²."""
    return velocity * np.sin(theta) * t - 0.5 * gravity * t * t


def time_to_apex(theta, velocity: float, gravity: float, k1: float):
    """Time C at which vy crosses zero under vertical quadratic drag."""
    if k1 == 0:
        return velocity * np.sin(theta) / gravity
    s = np.sqrt(k1 * gravity)
    return np.arctan(np.sqrt(k1 / gravity) * velocity * np.sin(theta)) / s


def apex_height(theta, velocity: float, gravity: float, k1: float):
    """Height reached at time_to_apex."""
    if k1 == 0:
        vy0 = velocity * np.sin(theta)
        return vy0 * vy0 / (2 * gravity)
    s = np.sqrt(k1 * gravity)
    C = time_to_apex(theta, velocity, gravity, k1)
    return -np.log(np.cos(s * C)) / k1


def _rising_height(t, C, s, k1):
    # clipped so the branch stays finite where it is not selected
    tau = np.minimum(t, C)
    return np.log(np.cos(s * (C - tau)) / np.cos(s * C)) / k1


def xy_simplified_ascending_height(t, theta, velocity: float, gravity: float,
                                   k1: float):
    """
    Drag while rising, drag-free parabola from the apex.

    Underestimates the height of long shots that pass the apex, since the
    falling part ignores drag.
    """
    if k1 == 0:
        return x_resistance_height(t, theta, velocity, gravity, k1)
    s = np.sqrt(k1 * gravity)
    C = time_to_apex(theta, velocity, gravity, k1)
    max_y = apex_height(theta, velocity, gravity, k1)

    fall = np.maximum(t - C, 0.0)
    return np.where(t <= C,
                    _rising_height(t, C, s, k1),
                    max_y - 0.5 * gravity * fall * fall)


def xy_ascending_height(t, theta, velocity: float, gravity: float, k1: float):
    """Drag while rising, terminal-velocity drag solution after the apex."""
    if k1 == 0:
        return x_resistance_height(t, theta, velocity, gravity, k1)
    s = np.sqrt(k1 * gravity)
    C = time_to_apex(theta, velocity, gravity, k1)
    max_y = apex_height(theta, velocity, gravity, k1)

    fall = np.maximum(t - C, 0.0)
    # ln(1 + e^{-2 s τ}) via logaddexp
    falling = max_y + (-s * fall + np.log(2.0)
                       - np.logaddexp(0.0, -2.0 * s * fall)) / k1
    return np.where(t <= C, _rising_height(t, C, s, k1), falling)


def xy_descending_height(t, theta, velocity: float, gravity: float, k1: float):
    """
    Downward launch below terminal velocity.

    C is a signed time offset (atanh of the launch speed over terminal
    speed), not a physical apex time. Requires |sqrt(k1/g) v0 sinθ| < 1.
    """
    if k1 == 0:
        return x_resistance_height(t, theta, velocity, gravity, k1)
    s = np.sqrt(k1 * gravity)
    a = np.sqrt(k1 / gravity) * velocity * np.sin(theta)
    C = np.log((1 + a) / (1 - a)) / (2 * s)
    return (s * t
            + np.logaddexp(0.0, 2 * C * s)
            - np.logaddexp(2 * C * s, 2 * t * s)) / k1


def descending_domain_ratio(theta, velocity: float, gravity: float, k1: float):
    """sqrt(k1/g) v0 sinθ: launch vertical speed over terminal speed."""
    return np.sqrt(k1 / gravity) * velocity * np.sin(theta)


# ══════════════════════════════════════════════════════════════════════════
#  Vertical acceleration laws — the ODEs the formulas integrate
# ══════════════════════════════════════════════════════════════════════════

def _vertical_vacuum(vy, gravity, k1):
    return -gravity


def _vertical_drag_rising_only(vy, gravity, k1):
    return -gravity - k1 * vy * vy if vy > 0 else -gravity


def _vertical_drag(vy, gravity, k1):
    return -gravity - k1 * vy * abs(vy)


def _vertical_drag_falling(vy, gravity, k1):
    # drag pushes up whatever the sign of vy
    return -gravity + k1 * vy * vy


# ══════════════════════════════════════════════════════════════════════════
#  Model registry
# ══════════════════════════════════════════════════════════════════════════

X_RESISTANCE = {
    'name': 'X-Only Drag',
    'color': '#e74c3c',
    'linestyle': '-',
    'height': x_resistance_height,
    'vertical_acceleration': _vertical_vacuum,
    'direction': 'any',
}

XY_SIMPLIFIED = {
    'name': 'XY Drag (Simplified Fall)',
    'color': '#3498db',
    'linestyle': '--',
    'height': xy_simplified_ascending_height,
    'vertical_acceleration': _vertical_drag_rising_only,
    'direction': 'up',
}

XY_ASCENDING = {
    'name': 'XY Drag (Shoot-Up)',
    'color': '#2ecc71',
    'linestyle': '-.',
    'height': xy_ascending_height,
    'vertical_acceleration': _vertical_drag,
    'direction': 'up',
}

XY_DESCENDING = {
    'name': 'XY Drag (Shoot-Down)',
    'color': '#f39c12',
    'linestyle': ':',
    'height': xy_descending_height,
    'vertical_acceleration': _vertical_drag_falling,
    'direction': 'down',
}

ALL_MODELS = {
    'x': X_RESISTANCE,
    'xy_simplified': XY_SIMPLIFIED,
    'xy_ascending': XY_ASCENDING,
    'xy_descending': XY_DESCENDING,
}


class DragModel:
    """
    One drag assumption: height prediction plus the launch direction it
    is valid for.
    """

    def __init__(self, key: str = 'xy_ascending'):
        """
        Parameters
        ----------
        key : str
            One of 'x', 'xy_simplified', 'xy_ascending', 'xy_descending'
        """
        if key not in ALL_MODELS:
            raise ValueError(
                f"Unknown drag model '{key}'. "
                f"Available: {list(ALL_MODELS.keys())}"
            )

        data = ALL_MODELS[key]
        self.key = key
        self.name = data['name']
        self.color = data['color']
        self.linestyle = data['linestyle']
        self.direction = data['direction']
        self._height = data['height']
        self._vertical_acceleration = data['vertical_acceleration']

    def __repr__(self):
        return f"DragModel({self.key!r})"

    def height(self, t, theta, params: LaunchParameters):
        """Height (m) after t seconds of flight at launch angle theta."""
        return self._height(t, theta, params.velocity, params.gravity, params.k1)

    def predict(self, x, theta, params: LaunchParameters):
        """Height (m) at which a shot at theta crosses horizontal distance x."""
        t = flight_time(x, theta, params.velocity, params.k1)
        return self.height(t, theta, params)

    def vertical_acceleration(self, vy: float, params: LaunchParameters) -> float:
        return self._vertical_acceleration(vy, params.gravity, params.k1)

    def direction_violation(self, pitch_rad: float, compensation_rad: float):
        """
        Return why the final angle lies outside this model's flight phase,
        or None when it is acceptable.
        """
        if self.direction == 'up' and pitch_rad < 0:
            return "ascending formula needs an upward launch"
        if self.direction == 'down' and pitch_rad > 0 and compensation_rad > 0:
            return ("descending formula needs a downward launch "
                    "or an aim below the line of sight")
        return None
