"""Error types raised by the compensation solvers."""


class CompensationError(Exception):
    """Base class for every solver failure."""


class InvalidGeometryError(CompensationError, ValueError):
    """Target offset cannot be aimed at (x <= 0 or non-finite)."""


class InvalidParametersError(CompensationError, ValueError):
    """Velocity, gravity, drag coefficient or iteration count out of range."""


class TrajectoryDomainError(CompensationError, ArithmeticError):
    """A drag formula left its mathematical domain during iteration."""

    def __init__(self, model: str, iteration: int, pitch_rad: float):
        self.model = model
        self.iteration = iteration
        self.pitch_rad = pitch_rad
        super().__init__(
            f"'{model}' trajectory is not finite at iteration {iteration} "
            f"(pitch={pitch_rad:.6f} rad)"
        )


class ShotDirectionError(CompensationError, ValueError):
    """
    The solved angle lies outside the flight phase the model describes.

    `converged` tells a settled angle the model cannot describe apart from
    an oscillating or diverging run that stopped on the wrong side.
    """

    def __init__(self, model: str, pitch_rad: float, compensation_rad: float,
                 reason: str, residual: float, converged: bool):
        self.model = model
        self.pitch_rad = pitch_rad
        self.compensation_rad = compensation_rad
        self.residual = residual
        self.converged = converged
        detail = "" if converged else \
            f"; refinement did not converge (residual={residual:.6g} m)"
        super().__init__(
            f"'{model}' cannot describe this shot: {reason}{detail} "
            f"(pitch={pitch_rad:.6f} rad, compensation={compensation_rad:.6f} rad)"
        )
