"""
Shot Definition
===============
Value types describing one aiming problem:
  - TargetOffset      : where the target sits relative to the muzzle
  - LaunchParameters  : muzzle velocity and the physical constants

Coordinate system:
  x = horizontal distance to the target (forward, > 0)
  y = vertical distance to the target  (up positive)
"""

import math
from dataclasses import dataclass

from .constants import DEFAULT_GRAVITY, DEFAULT_K1
from .exceptions import InvalidGeometryError, InvalidParametersError


@dataclass(frozen=True)
class TargetOffset:
    """Horizontal / vertical offset of the target from the muzzle (m)."""
    x: float
    y: float

    def __post_init__(self):
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            raise InvalidGeometryError(
                f"Target offset must be finite, got x={self.x}, y={self.y}"
            )
        if self.x <= 0:
            raise InvalidGeometryError(
                f"Horizontal distance must be positive, got x={self.x}"
            )

    @property
    def elevation(self) -> float:
        """Line-of-sight angle θ0 = atan(y / x) in radians."""
        return math.atan(self.y / self.x)


@dataclass(frozen=True)
class LaunchParameters:
    """
    Muzzle velocity and physical parameters of a shot.

    k1 = 0 is the vacuum case; every drag formula falls back to its
    drag-free limit.
    """
    velocity: float                    # m/s  muzzle velocity
    gravity: float = DEFAULT_GRAVITY   # m/s²
    k1: float = DEFAULT_K1             # 1/m  drag coefficient over mass

    def __post_init__(self):
        for name in ('velocity', 'gravity', 'k1'):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise InvalidParametersError(f"{name} must be finite, got {value}")
        if self.velocity <= 0:
            raise InvalidParametersError(
                f"Muzzle velocity must be positive, got {self.velocity}"
            )
        if self.gravity <= 0:
            raise InvalidParametersError(
                f"Gravity must be positive, got {self.gravity}"
            )
        if self.k1 < 0:
            raise InvalidParametersError(
                f"Drag coefficient k1 must be >= 0, got {self.k1}"
            )

    @property
    def terminal_velocity(self) -> float:
        """Vertical terminal speed sqrt(g / k1) (m/s); inf in vacuum."""
        if self.k1 == 0:
            return math.inf
        return math.sqrt(self.gravity / self.k1)
