"""
Unit Tests for the Ballistic Compensation Solver
================================================
Tests drag models, the fixed-point refiner and the phase selector.
Run: python -m pytest tests/ -v
"""

import sys
import os
import logging
import math
import numpy as np
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from shot_compensation.constants import DEFAULT_GRAVITY, DEFAULT_K1, DEFAULT_TOLERANCE
from shot_compensation.exceptions import (
    CompensationError, InvalidGeometryError, InvalidParametersError,
    TrajectoryDomainError, ShotDirectionError,
)
from shot_compensation.shot import TargetOffset, LaunchParameters
from shot_compensation.drag_model import (
    DragModel, ALL_MODELS, flight_time, time_to_apex, apex_height,
    x_resistance_height, xy_simplified_ascending_height, xy_ascending_height,
    xy_descending_height,
)
from shot_compensation.solver import (
    refine, select_model, solve,
    compensation_x_resistance,
    compensation_xy_resistance1_shootup,
    compensation_xy_resistance2_shootup,
    compensation_xy_resistance2_shootdown,
    compensation_xy_resistance2,
)
from shot_compensation.validation import (
    simulate_shot, verify_compensation, reference_compensation,
)
from shot_compensation.calibration import (
    air_density, k1_from_projectile, calibrate_k1,
)


G = DEFAULT_GRAVITY


def vacuum_compensation(x, y, v0, g=G):
    """Low-arc pitch of a drag-free shot through (x, y), minus line of sight."""
    disc = v0**4 - g * (g * x**2 + 2 * y * v0**2)
    pitch = math.atan((v0**2 - math.sqrt(disc)) / (g * x))
    return pitch - math.atan(y / x)


def vacuum_height(x, pitch, v0, g=G):
    return x * math.tan(pitch) - g * x**2 / (2 * v0**2 * math.cos(pitch)**2)


class TestShotParameters:
    """Input validation happens before any iteration."""

    def test_zero_distance_rejected(self):
        with pytest.raises(InvalidGeometryError):
            compensation_x_resistance(0.0, 1.0, 300.0)

    def test_invalid_geometry_is_value_error(self):
        with pytest.raises(ValueError):
            TargetOffset(-5.0, 1.0)

    def test_non_finite_target_rejected(self):
        with pytest.raises(InvalidGeometryError):
            TargetOffset(100.0, float('nan'))

    @pytest.mark.parametrize("kwargs", [
        dict(velocity=0.0),
        dict(velocity=-300.0),
        dict(velocity=300.0, gravity=0.0),
        dict(velocity=300.0, k1=-0.001),
        dict(velocity=float('inf')),
    ])
    def test_invalid_launch_parameters(self, kwargs):
        with pytest.raises(InvalidParametersError):
            LaunchParameters(**kwargs)

    def test_iteration_count_must_be_positive(self):
        with pytest.raises(InvalidParametersError):
            solve(100.0, 20.0, 300.0, max_iterations=0)

    def test_line_of_sight_angle(self):
        assert abs(TargetOffset(100.0, 100.0).elevation - math.pi / 4) < 1e-12

    def test_defaults(self):
        params = LaunchParameters(300.0)
        assert params.gravity == 9.7803
        assert params.k1 == 0.008


class TestDragModel:
    """Closed-form height predictions."""

    params = LaunchParameters(300.0)

    def test_all_models_exist(self):
        for key in ['x', 'xy_simplified', 'xy_ascending', 'xy_descending']:
            assert DragModel(key).name is not None

    def test_unknown_model_raises(self):
        with pytest.raises(ValueError):
            DragModel('yz')

    def test_drag_lengthens_flight(self):
        t_drag = flight_time(100.0, 0.1, 300.0, DEFAULT_K1)
        t_vac = flight_time(100.0, 0.1, 300.0, 0.0)
        assert abs(t_vac - 100.0 / (300.0 * math.cos(0.1))) < 1e-12
        assert t_drag > t_vac

    def test_flight_time_small_drag_limit(self):
        t_small = flight_time(100.0, 0.1, 300.0, 1e-9)
        assert abs(t_small - flight_time(100.0, 0.1, 300.0, 0.0)) < 1e-6

    def test_heights_start_at_muzzle(self):
        assert abs(x_resistance_height(0.0, 0.2, 300.0, G, DEFAULT_K1)) < 1e-12
        assert abs(xy_simplified_ascending_height(0.0, 0.2, 300.0, G, DEFAULT_K1)) < 1e-12
        assert abs(xy_ascending_height(0.0, 0.2, 300.0, G, DEFAULT_K1)) < 1e-12
        assert abs(xy_descending_height(0.0, -0.05, 30.0, G, DEFAULT_K1)) < 1e-12

    def test_apex_continuity(self):
        """Both ascending models reach the apex height at t = C."""
        theta = 0.3
        C = time_to_apex(theta, 300.0, G, DEFAULT_K1)
        max_y = apex_height(theta, 300.0, G, DEFAULT_K1)
        for fn in (xy_simplified_ascending_height, xy_ascending_height):
            assert abs(fn(C, theta, 300.0, G, DEFAULT_K1) - max_y) < 1e-9
            assert abs(fn(C + 1e-7, theta, 300.0, G, DEFAULT_K1) - max_y) < 1e-6

    def test_models_agree_before_apex(self):
        theta = 0.3
        C = time_to_apex(theta, 300.0, G, DEFAULT_K1)
        t = 0.5 * C
        simplified = float(xy_simplified_ascending_height(t, theta, 300.0, G, DEFAULT_K1))
        full = float(xy_ascending_height(t, theta, 300.0, G, DEFAULT_K1))
        assert simplified == pytest.approx(full, abs=1e-12)

    def test_drag_free_fall_is_lower_after_apex(self):
        """Without drag on the way down the shot falls faster."""
        theta = 0.3
        t = time_to_apex(theta, 300.0, G, DEFAULT_K1) + 2.0
        simplified = xy_simplified_ascending_height(t, theta, 300.0, G, DEFAULT_K1)
        full = xy_ascending_height(t, theta, 300.0, G, DEFAULT_K1)
        assert simplified < full

    def test_vertical_drag_lowers_rising_shot(self):
        t = 0.5
        assert xy_ascending_height(t, 0.2, 300.0, G, DEFAULT_K1) < \
            x_resistance_height(t, 0.2, 300.0, G, DEFAULT_K1)

    def test_vacuum_models_coincide(self):
        vacuum = LaunchParameters(300.0, k1=0.0)
        expected = DragModel('x').predict(100.0, 0.1, vacuum)
        for key in ALL_MODELS:
            assert abs(DragModel(key).predict(100.0, 0.1, vacuum) - expected) < 1e-12

    def test_heights_are_vectorized(self):
        t = np.linspace(0.0, 5.0, 11)
        y = DragModel('xy_ascending').height(t, 0.3, self.params)
        assert y.shape == t.shape
        assert np.all(np.isfinite(y))

    def test_direction_rules(self):
        assert DragModel('x').direction_violation(-0.5, 0.3) is None
        assert DragModel('xy_ascending').direction_violation(-0.01, 0.1) is not None
        assert DragModel('xy_ascending').direction_violation(0.1, -0.1) is None
        assert DragModel('xy_descending').direction_violation(0.1, 0.01) is not None
        assert DragModel('xy_descending').direction_violation(0.1, -0.01) is None
        assert DragModel('xy_descending').direction_violation(-0.1, 0.01) is None


class TestRefiner:
    """Fixed-point angle refinement."""

    def test_vacuum_matches_closed_form(self):
        expected = vacuum_compensation(100.0, 20.0, 300.0)
        for key in ('x', 'xy_simplified', 'xy_ascending'):
            result = solve(100.0, 20.0, 300.0, key, k1=0.0)
            assert abs(result.compensation_rad - expected) < 1e-9

    def test_small_drag_approaches_vacuum(self):
        up = vacuum_compensation(100.0, 20.0, 300.0)
        for key in ('x', 'xy_simplified', 'xy_ascending'):
            assert abs(solve(100.0, 20.0, 300.0, key, k1=1e-6).compensation_rad - up) < 1e-4
        down = vacuum_compensation(100.0, -20.0, 300.0)
        result = solve(100.0, -20.0, 300.0, 'xy_descending', k1=1e-6)
        assert abs(result.compensation_rad - down) < 1e-4

    @pytest.mark.parametrize("x, y", [(100.0, 20.0), (50.0, -10.0), (300.0, 0.0)])
    def test_vacuum_shot_lands_on_target(self, x, y):
        result = solve(x, y, 300.0, 'x', k1=0.0)
        assert abs(vacuum_height(x, result.pitch_rad, 300.0) - y) < 1e-6

    def test_error_shrinks_every_round(self):
        result = solve(100.0, 20.0, 300.0, 'x')
        errors = [abs(r.delta_h) for r in result.iterations]
        assert all(b < a for a, b in zip(errors, errors[1:]))
        assert abs(result.residual) < errors[-1]

    def test_reference_target_converges(self):
        """x=100, y=20, v0=300: error below 1e-3 of the target height."""
        result = solve(100.0, 20.0, 300.0)
        errors = [abs(r.delta_h) for r in result.iterations]
        assert all(b < a for a, b in zip(errors[1:], errors[2:]))
        assert abs(result.residual) < 1e-3 * 20.0
        assert result.converged

    def test_exhausted_iterations_reported(self):
        result = solve(100.0, 20.0, 300.0, 'x', max_iterations=2)
        assert not result.converged
        assert abs(result.residual) > result.tolerance

    @pytest.mark.parametrize("n", [1, 10, 25])
    def test_fixed_round_count(self, n):
        assert len(solve(100.0, 20.0, 300.0, 'x', max_iterations=n).iterations) == n

    def test_repeat_calls_identical(self):
        first = compensation_xy_resistance2(100.0, 20.0, 300.0)
        second = compensation_xy_resistance2(100.0, 20.0, 300.0)
        assert first == second
        assert compensation_x_resistance(80.0, 3.0, 250.0) == \
            compensation_x_resistance(80.0, 3.0, 250.0)

    def test_entry_points_match_solve(self):
        assert compensation_x_resistance(100.0, 20.0, 300.0) == \
            solve(100.0, 20.0, 300.0, 'x').compensation_rad
        assert compensation_xy_resistance1_shootup(100.0, 20.0, 300.0) == \
            solve(100.0, 20.0, 300.0, 'xy_simplified').compensation_rad
        assert compensation_xy_resistance2_shootup(100.0, 20.0, 300.0) == \
            solve(100.0, 20.0, 300.0, 'xy_ascending').compensation_rad

    def test_sink_receives_every_round(self):
        records = []
        result = solve(100.0, 20.0, 300.0, 'x', sink=records.append)
        assert [r.iteration for r in records] == list(range(10))
        assert records[-1].compensation_rad == result.compensation_rad
        assert records[-1].pitch_deg == pytest.approx(result.pitch_deg)

    def test_diagnostics_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger='shot_compensation'):
            compensation_x_resistance(100.0, 20.0, 300.0, diagnostics=True)
        messages = [r.getMessage() for r in caplog.records
                    if r.name == 'shot_compensation']
        assert len(messages) == 10
        assert messages[0].startswith('i=0 ')
        assert 'degree' in messages[0] and 'pitch=' in messages[0]

    def test_no_logging_without_diagnostics(self, caplog):
        with caplog.at_level(logging.INFO, logger='shot_compensation'):
            compensation_x_resistance(100.0, 20.0, 300.0)
        assert not [r for r in caplog.records if r.name == 'shot_compensation']

    def test_descending_outside_domain_raises(self):
        """Line of sight faster than terminal velocity upwards: ln of a negative."""
        with pytest.raises(TrajectoryDomainError) as exc:
            compensation_xy_resistance2_shootdown(100.0, 20.0, 300.0)
        assert exc.value.iteration == 0
        assert isinstance(exc.value, ArithmeticError)

    def test_shootdown_rejects_upward_correction(self):
        with pytest.raises(ShotDirectionError):
            compensation_xy_resistance2_shootdown(10.0, 3.0, 30.0)

    def test_shootup_rejects_downward_launch(self):
        with pytest.raises(ShotDirectionError) as exc:
            compensation_xy_resistance2_shootup(100.0, -5.0, 300.0)
        assert exc.value.converged
        assert exc.value.model == 'xy_ascending'

    def test_oscillating_shot_reports_non_convergence(self):
        """Long flat shot: the pitch flips sign every round and never settles."""
        with pytest.raises(ShotDirectionError) as exc:
            solve(300.0, 0.0, 300.0, 'xy_ascending', max_iterations=10)
        assert not exc.value.converged
        assert abs(exc.value.residual) > DEFAULT_TOLERANCE
        assert 'did not converge' in str(exc.value)

        result = solve(300.0, 0.0, 300.0, 'xy_ascending', max_iterations=11)
        assert result.pitch_rad > 0
        assert not result.converged
        assert abs(result.residual) > result.tolerance

    def test_numpy_iteration_count_accepted(self):
        result = solve(100.0, 20.0, 300.0, 'x', max_iterations=np.int64(10))
        assert len(result.iterations) == 10
        assert result.compensation_rad == compensation_x_resistance(100.0, 20.0, 300.0)

    def test_refine_with_value_types(self):
        target = TargetOffset(100.0, 20.0)
        params = LaunchParameters(300.0)
        result = refine(target, params, DragModel('x'))
        assert result.model == 'x'
        assert result.compensation_rad == compensation_x_resistance(100.0, 20.0, 300.0)
        assert 'COMPENSATION' in result.summary()


class TestModelSelector:
    """Shoot-up / shoot-down dispatch."""

    def test_shoot_down_target(self):
        """Line-of-sight shot lands above the target: aim comes down."""
        assert select_model(TargetOffset(100.0, 5.0), LaunchParameters(300.0)) == 'xy_descending'
        result = solve(100.0, 5.0, 300.0)
        assert result.model == 'xy_descending'
        assert result.fallback_from is None
        assert result.compensation_rad < 0
        assert result.compensation_rad == compensation_xy_resistance2_shootdown(100.0, 5.0, 300.0)

    def test_shoot_up_target(self):
        assert select_model(TargetOffset(10.0, 3.0), LaunchParameters(30.0)) == 'xy_ascending'
        result = solve(10.0, 3.0, 30.0)
        assert result.model == 'xy_ascending'
        assert result.fallback_from is None
        assert result.compensation_rad > 0
        assert result.compensation_rad == compensation_xy_resistance2_shootup(10.0, 3.0, 30.0)

    def test_steep_line_of_sight_is_shoot_up(self):
        assert select_model(TargetOffset(100.0, 20.0), LaunchParameters(300.0)) == 'xy_ascending'
        assert compensation_xy_resistance2(100.0, 20.0, 300.0) == \
            compensation_xy_resistance2_shootup(100.0, 20.0, 300.0)

    def test_falls_back_to_other_phase(self):
        """Target below the horizon: the selector's shoot-up guess ends pointing down."""
        assert select_model(TargetOffset(100.0, -5.0), LaunchParameters(300.0)) == 'xy_ascending'
        result = solve(100.0, -5.0, 300.0)
        assert result.model == 'xy_descending'
        assert result.fallback_from == 'xy_ascending'
        assert result.pitch_rad < 0

    def test_both_phases_rejected(self):
        """Steep shot down: shoot-up ends pointing down, shoot-down leaves its domain."""
        with pytest.raises(ShotDirectionError) as exc:
            solve(100.0, -200.0, 300.0)
        assert exc.value.model == 'xy_ascending'
        assert exc.value.pitch_rad < 0


class TestValidation:
    """Numerical flight and root-found references."""

    @pytest.mark.parametrize("x, y, v0, model", [
        (100.0, 20.0, 300.0, 'x'),
        (10.0, 3.0, 30.0, 'xy_simplified'),
        (100.0, 20.0, 300.0, 'xy_ascending'),
        (100.0, 5.0, 300.0, 'xy_descending'),
    ])
    def test_rk4_matches_closed_form(self, x, y, v0, model):
        check = verify_compensation(solve(x, y, v0, model))
        assert abs(check.model_error) < 1e-4

    def test_solved_shot_hits_target(self):
        check = verify_compensation(solve(100.0, 20.0, 300.0))
        assert abs(check.miss) < 1e-3

    def test_reference_angle_matches_solver(self):
        target = TargetOffset(100.0, 20.0)
        params = LaunchParameters(300.0)
        ref_x = reference_compensation(target, params, DragModel('x'), bracket=(-0.15, 0.15))
        ref_xy = reference_compensation(target, params, DragModel('xy_ascending'),
                                        bracket=(-0.15, 0.15))
        assert abs(compensation_x_resistance(100.0, 20.0, 300.0) - ref_x) < 5e-4
        assert abs(compensation_xy_resistance2_shootup(100.0, 20.0, 300.0) - ref_xy) < 1e-6

    def test_trace_stops_past_target(self):
        trace = simulate_shot(0.1, LaunchParameters(300.0), DragModel('x'), x_max=50.0)
        assert trace.x[-1] >= 50.0
        assert trace.flight_time > 0
        with pytest.raises(CompensationError):
            trace.height_at(60.0)

    def test_horizontal_speed_decays(self):
        trace = simulate_shot(0.1, LaunchParameters(300.0), DragModel('xy_ascending'),
                              x_max=100.0)
        assert np.all(np.diff(trace.vx) < 0)


class TestCalibration:
    """k1 from projectile data or an observed hit."""

    def test_sea_level_density(self):
        assert abs(air_density(0.0) - 1.225) < 0.01

    def test_density_decreases_with_altitude(self):
        assert air_density(0.0) > air_density(5000.0) > air_density(15000.0)

    def test_k1_from_projectile(self):
        expected = 0.5 * 1.225 * 0.47 * math.pi * 0.0084**2 / 0.0032
        assert k1_from_projectile(0.0032, 0.0168, 0.47) == pytest.approx(expected)

    def test_invalid_projectile_rejected(self):
        with pytest.raises(InvalidParametersError):
            k1_from_projectile(0.0, 0.0168, 0.47)

    def test_recovers_k1_from_observed_hit(self):
        params = LaunchParameters(300.0, k1=0.008)
        y = float(DragModel('x').predict(100.0, 0.1, params))
        assert calibrate_k1(300.0, 0.1, 100.0, y) == pytest.approx(0.008, rel=1e-6)

    def test_height_above_apex_rejected(self):
        with pytest.raises(InvalidGeometryError):
            calibrate_k1(30.0, 0.1, 10.0, 50.0)


class TestVisualization:

    def test_convergence_plot(self):
        from shot_compensation.visualization import plot_convergence
        import matplotlib.pyplot as plt

        fig = plot_convergence(solve(100.0, 20.0, 300.0))
        assert len(fig.axes) == 2
        plt.close(fig)

    def test_runner_plots_without_auto_result(self, tmp_path):
        """A rejected auto solve skips only the convergence plot."""
        from main import save_plots

        target = TargetOffset(10.0, 3.0)
        params = LaunchParameters(30.0)
        results = {'x': solve(10.0, 3.0, 30.0, 'x')}
        saved = save_plots(results, target, params, out=str(tmp_path))
        names = sorted(os.path.basename(p) for p in saved)
        assert names == ['02_trajectories.png', '03_compensation_vs_range.png']
        for path in saved:
            assert os.path.exists(path)


if __name__ == "__main__":
    pytest.main([__file__, '-v'])
