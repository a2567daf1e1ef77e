from __future__ import annotations
import numpy as np
import pytest

from jointsync.math.quaternion import quat_from_axis_angle
from jointsync.pipeline.gap_classifier import (
    GapPolicy,
    GapType,
    PointKind,
    classify_point,
    fill_gaps,
    validate_samples,
)
from jointsync.pipeline.types import CombinedSample, PipelineError, SampleFlag


def qx(deg):
    return quat_from_axis_angle([1, 0, 0], deg)


def test_policy_for_100hz():
    p = GapPolicy.for_rate(100)
    assert p.interval == pytest.approx(10.0)
    assert p.gap_threshold == pytest.approx(20.0)
    assert p.tolerance == pytest.approx(5.0)


def test_validate_reports_small_and_large_gaps():
    v = validate_samples([0.0, 10.0, 28.0, 38.0, 138.0], 100)
    assert not v.is_uniform
    assert v.small_gap_count == 1
    assert v.large_gap_count == 1
    small, large = v.gaps
    assert small.type is GapType.SMALL and small.after_index == 1
    assert small.missing_samples == 1
    assert large.type is GapType.LARGE and large.duration == pytest.approx(100.0)
    assert large.missing_samples == 9
    assert v.expected_sample_count == 15
    assert v.actual_sample_count == 5


def test_validate_uniform_and_short_input():
    assert validate_samples(np.arange(0, 100, 10.0), 100).is_uniform
    v = validate_samples([5.0], 100)
    assert v.is_uniform and v.expected_sample_count == 1


def test_classify_point():
    p = GapPolicy.for_rate(100)
    assert classify_point(12.0, 10.0, 28.0, p) == (PointKind.REAL, False)
    assert classify_point(26.0, 10.0, 28.0, p) == (PointKind.REAL, True)
    assert classify_point(20.0, 10.0, 28.0, p)[0] is PointKind.SMALL_GAP
    assert classify_point(50.0, 38.0, 138.0, p)[0] is PointKind.LARGE_GAP
    assert classify_point(150.0, 138.0, None, p)[0] is PointKind.TRAILING
    assert classify_point(-20.0, 0.0, 10.0, p)[0] is PointKind.LEADING
    with pytest.raises(PipelineError):
        classify_point(0.0, None, None, p)


def test_tolerance_boundary_is_exclusive():
    p = GapPolicy.for_rate(100)
    # exactly half an interval away from both neighbours is not "at" a sample
    assert classify_point(15.0, 10.0, 20.0, p)[0] is PointKind.SMALL_GAP


def test_fill_gaps_small_gap_is_interpolated():
    samples = [
        CombinedSample(t=0.0, left=qx(0), right=None),
        CombinedSample(t=10.0, left=qx(10), right=None),
        CombinedSample(t=27.0, left=qx(27), right=None),
        CombinedSample(t=37.0, left=qx(37), right=None),
    ]
    res = fill_gaps(samples, 100)
    by_t = {s.t: s for s in res.samples}
    assert by_t[0.0].left_flag is SampleFlag.REAL
    assert by_t[10.0].left_flag is SampleFlag.REAL
    assert by_t[20.0].left_flag is SampleFlag.INTERPOLATED
    np.testing.assert_allclose(by_t[20.0].left, qx(20), atol=1e-9)
    # absent side stays absent and is flagged as such
    assert all(s.right is None and s.right_flag is SampleFlag.MISSING for s in res.samples)
    assert res.stats.small_gaps_found == 1
    assert res.stats.interpolated_count >= 1


def test_fill_gaps_snaps_jittered_samples():
    samples = [
        CombinedSample(t=0.0, left=qx(0), right=qx(0)),
        CombinedSample(t=12.0, left=qx(12), right=qx(-12)),
        CombinedSample(t=19.0, left=qx(19), right=qx(-19)),
    ]
    res = fill_gaps(samples, 100)
    s10 = res.samples[1]
    assert s10.t == 10.0
    assert s10.left_flag is SampleFlag.REAL and s10.right_flag is SampleFlag.REAL
    np.testing.assert_allclose(s10.left, qx(12))
    np.testing.assert_allclose(s10.right, qx(-12))


def test_fill_gaps_holds_across_large_gap():
    before = qx(10)
    after = qx(70)
    samples = [CombinedSample(t=float(t), left=before, right=None) for t in range(0, 101, 10)]
    samples += [CombinedSample(t=float(t), left=after, right=None) for t in range(1000, 1101, 10)]
    res = fill_gaps(samples, 100)
    assert len(res.samples) == 111
    gap = [s for s in res.samples if 100.0 < s.t < 1000.0]
    assert len(gap) == 89
    for s in gap:
        assert s.left_flag is SampleFlag.MISSING
        np.testing.assert_allclose(s.left, before)
    at_1000 = next(s for s in res.samples if s.t == 1000.0)
    assert at_1000.left_flag is SampleFlag.REAL
    np.testing.assert_allclose(at_1000.left, after)
    assert res.stats.large_gaps_found == 1
    assert res.stats.missing_count == 89
    assert res.stats.output_count == 111
    assert res.stats.input_count == 22


def test_fill_gaps_sorts_input_and_handles_empty():
    assert fill_gaps([], 100).samples == []
    samples = [
        CombinedSample(t=10.0, left=qx(10), right=None),
        CombinedSample(t=0.0, left=qx(0), right=None),
    ]
    res = fill_gaps(samples, 100)
    assert [s.t for s in res.samples] == [0.0, 10.0]
    np.testing.assert_allclose(res.samples[0].left, qx(0))
