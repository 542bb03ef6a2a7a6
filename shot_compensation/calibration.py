"""
Drag Coefficient Calibration
============================
Ways to obtain k1 = k0 / m instead of guessing it:

- from projectile properties, using the drag force F = ½ ρ Cd A v²
  (so k0 = ½ ρ Cd A);
- from one observed shot: a known pitch and muzzle velocity that hit the
  point (x, y), inverted through the x-only drag model.

Air density follows the ISA 1976 troposphere / lower stratosphere.
"""

import math

import numpy as np
from scipy.optimize import brentq

from .constants import DEFAULT_GRAVITY
from .exceptions import InvalidGeometryError, InvalidParametersError


# ── ISA Constants ──────────────────────────────────────────────────────────
SEA_LEVEL_TEMP       = 288.15      # K
SEA_LEVEL_PRESSURE   = 101325.0    # Pa
SEA_LEVEL_DENSITY    = 1.225       # kg/m³
LAPSE_RATE_TROPO     = -0.0065     # K/m
TROPOPAUSE_ALT       = 11000.0     # m
STANDARD_GRAVITY     = 9.80665     # m/s²
MOLAR_MASS_AIR       = 0.0289644   # kg/mol
GAS_CONSTANT         = 8.31447     # J/(mol·K)
R_SPECIFIC           = 287.058     # J/(kg·K)


def air_density(altitude: float = 0.0) -> float:
    """
    Air density (kg/m³) at a geometric altitude (m), valid up to 20 km.

    Linear lapse below the tropopause, isothermal layer above it.
    """
    if not 0.0 <= altitude <= 20000.0:
        raise InvalidParametersError(
            f"Altitude must be within 0-20000 m, got {altitude}"
        )
    exponent = STANDARD_GRAVITY * MOLAR_MASS_AIR / (GAS_CONSTANT * abs(LAPSE_RATE_TROPO))

    if altitude <= TROPOPAUSE_ALT:
        T = SEA_LEVEL_TEMP + LAPSE_RATE_TROPO * altitude
        P = SEA_LEVEL_PRESSURE * (T / SEA_LEVEL_TEMP) ** exponent
    else:
        T = SEA_LEVEL_TEMP + LAPSE_RATE_TROPO * TROPOPAUSE_ALT
        P_tropo = SEA_LEVEL_PRESSURE * (T / SEA_LEVEL_TEMP) ** exponent
        P = P_tropo * math.exp(
            -STANDARD_GRAVITY * MOLAR_MASS_AIR * (altitude - TROPOPAUSE_ALT)
            / (GAS_CONSTANT * T)
        )
    return P / (R_SPECIFIC * T)


def k1_from_projectile(mass: float, diameter: float, drag_coefficient: float,
                       density: float = SEA_LEVEL_DENSITY) -> float:
    """
    k1 (1/m) for a projectile of given mass (kg), diameter (m) and Cd.

    k1 = ½ ρ Cd A / m, with A the cross-sectional area.
    """
    for name, value in (('mass', mass), ('diameter', diameter),
                        ('drag_coefficient', drag_coefficient),
                        ('density', density)):
        if not (math.isfinite(value) and value > 0):
            raise InvalidParametersError(f"{name} must be positive, got {value}")

    area = np.pi * (diameter / 2) ** 2
    return 0.5 * density * drag_coefficient * area / mass


def calibrate_k1(velocity: float, pitch_rad: float, x: float, y: float,
                 gravity: float = DEFAULT_GRAVITY,
                 descending: bool = False) -> float:
    """
    Recover k1 from an observed hit at (x, y) fired at pitch_rad.

    The vertical equation y = v0 sinθ t - ½ g t² gives the flight time
    (first crossing of y, or the second one when `descending`), then the
    horizontal law x = ln(1 + k1 v0 cosθ t) / k1 is solved for k1.

    Returns 0.0 when the shot travelled exactly as far as in vacuum.
    """
    if not (math.isfinite(velocity) and velocity > 0):
        raise InvalidParametersError(f"Muzzle velocity must be positive, got {velocity}")
    if not (math.isfinite(x) and x > 0 and math.isfinite(y)):
        raise InvalidGeometryError(f"Impact point must be finite with x > 0, got ({x}, {y})")

    vx0 = velocity * math.cos(pitch_rad)
    vy0 = velocity * math.sin(pitch_rad)
    if vx0 <= 0:
        raise InvalidGeometryError(f"Pitch {pitch_rad} rad does not fire forward")

    disc = vy0 * vy0 - 2 * gravity * y
    if disc < 0:
        raise InvalidGeometryError(
            f"Height {y} m is above the apex of a shot at {pitch_rad} rad"
        )
    root = math.sqrt(disc)
    t = (vy0 + root) / gravity if descending else (vy0 - root) / gravity
    if t <= 0:
        raise InvalidGeometryError(
            f"Shot at {pitch_rad} rad never reaches height {y} m going forward"
        )

    vacuum_reach = vx0 * t
    if math.isclose(x, vacuum_reach, rel_tol=1e-12):
        return 0.0
    if x > vacuum_reach:
        raise InvalidParametersError(
            f"Impact at x={x} m lies beyond the vacuum reach {vacuum_reach:.3f} m"
        )

    def reach_error(k1):
        return math.log1p(k1 * vx0 * t) / k1 - x

    k_lo, k_hi = 1e-12, 1.0
    while reach_error(k_hi) > 0:
        k_hi *= 2.0
    return brentq(reach_error, k_lo, k_hi, xtol=1e-15)
