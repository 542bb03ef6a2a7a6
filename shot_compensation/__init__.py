"""
Ballistic Compensation Solver
=============================
Computes the pitch correction a turret needs to hit a target at a known
horizontal / vertical offset, given the muzzle velocity, with air drag:
  - x-only drag (horizontal decay, drag-free vertical motion)
  - xy quadratic drag, split into shoot-up and shoot-down phases
  - automatic shoot-up / shoot-down selection

Every solver refines the angle with the same fixed-point loop; the drag
models only change the predicted height of a shot.
"""

from .constants import (
    PI, DEFAULT_GRAVITY, DEFAULT_K1, DEFAULT_ITERATIONS, DEFAULT_TOLERANCE,
)
from .exceptions import (
    CompensationError, InvalidGeometryError, InvalidParametersError,
    TrajectoryDomainError, ShotDirectionError,
)
from .shot import TargetOffset, LaunchParameters
from .drag_model import DragModel, ALL_MODELS, flight_time
from .solver import (
    IterationRecord, CompensationResult,
    refine, select_model, solve_auto, solve,
    compensation_x_resistance,
    compensation_xy_resistance1_shootup,
    compensation_xy_resistance2_shootup,
    compensation_xy_resistance2_shootdown,
    compensation_xy_resistance2,
)
from .validation import (
    ShotTrace, ShotCheck, simulate_shot, verify_compensation,
    reference_compensation,
)
from .calibration import air_density, k1_from_projectile, calibrate_k1

__version__ = "1.0.0"
__all__ = [
    'PI', 'DEFAULT_GRAVITY', 'DEFAULT_K1', 'DEFAULT_ITERATIONS', 'DEFAULT_TOLERANCE',
    'CompensationError', 'InvalidGeometryError', 'InvalidParametersError',
    'TrajectoryDomainError', 'ShotDirectionError',
    'TargetOffset', 'LaunchParameters',
    'DragModel', 'ALL_MODELS', 'flight_time',
    'IterationRecord', 'CompensationResult',
    'refine', 'select_model', 'solve_auto', 'solve',
    'compensation_x_resistance',
    'compensation_xy_resistance1_shootup',
    'compensation_xy_resistance2_shootup',
    'compensation_xy_resistance2_shootdown',
    'compensation_xy_resistance2',
    'ShotTrace', 'ShotCheck', 'simulate_shot', 'verify_compensation',
    'reference_compensation',
    'air_density', 'k1_from_projectile', 'calibrate_k1',
]
