from __future__ import annotations
import numpy as np
import pytest

from jointsync.math.quaternion import IDENTITY, quat_from_axis_angle
from jointsync.pipeline.grid import (
    BracketCursor,
    generate_time_grid,
    grid_interval,
    grid_sample_count,
    slerp_to_time,
)
from jointsync.pipeline.types import PipelineError


def test_grid_is_uniform_and_inclusive():
    g = generate_time_grid(0.0, 1000.0, 100)
    assert g.size == 101
    assert g[0] == 0.0
    np.testing.assert_allclose(g[-1], 1000.0)
    np.testing.assert_allclose(np.diff(g), 10.0, atol=0.1)


def test_grid_does_not_drift_over_long_recordings():
    g = generate_time_grid(0.0, 3_600_000.0, 120)
    interval = 1000.0 / 120
    np.testing.assert_allclose(g, np.arange(g.size) * interval, rtol=0, atol=1e-6)
    assert g[-1] <= 3_600_000.0 + 1e-6


def test_grid_drops_points_past_end():
    g = generate_time_grid(0.0, 25.0, 100)
    np.testing.assert_allclose(g, [0.0, 10.0, 20.0])


def test_single_point_grid():
    g = generate_time_grid(5.0, 5.0, 100)
    np.testing.assert_allclose(g, [5.0])


def test_negative_start():
    g = generate_time_grid(-100.0, 100.0, 100)
    assert g.size == 21
    np.testing.assert_allclose(g[0], -100.0)


def test_bad_rate_and_negative_count_raise():
    with pytest.raises(PipelineError):
        grid_interval(0)
    with pytest.raises(PipelineError):
        grid_interval(float("nan"))
    with pytest.raises(PipelineError):
        grid_sample_count(100.0, 0.0, 10.0)
    with pytest.raises(PipelineError):
        generate_time_grid(100.0, 0.0, 100)


def test_bracket_cursor_walks_forward():
    c = BracketCursor(np.array([0.0, 10.0, 20.0]))
    assert c.advance(-5.0) == (0, 1)
    assert c.advance(0.0) == (0, 1)
    assert c.advance(15.0) == (1, 2)
    assert c.advance(20.0) == (2, None)
    assert c.advance(99.0) == (2, None)
    assert BracketCursor(np.array([])).advance(1.0) == (None, None)


def test_slerp_to_time_boundaries():
    q0 = IDENTITY
    q1 = quat_from_axis_angle([0, 1, 0], 90.0)
    prev, nxt = (0.0, q0), (100.0, q1)
    np.testing.assert_allclose(slerp_to_time(prev, nxt, -10.0), q0)
    np.testing.assert_allclose(slerp_to_time(prev, nxt, 0.0), q0)
    np.testing.assert_allclose(slerp_to_time(prev, nxt, 100.0), q1)
    np.testing.assert_allclose(slerp_to_time(prev, nxt, 150.0), q1)
    np.testing.assert_allclose(
        slerp_to_time(prev, nxt, 50.0), quat_from_axis_angle([0, 1, 0], 45.0), atol=1e-9
    )
    assert slerp_to_time(None, None, 1.0) is None
    np.testing.assert_allclose(slerp_to_time(None, nxt, 1.0), q1)
    np.testing.assert_allclose(slerp_to_time(prev, None, 1.0), q0)
