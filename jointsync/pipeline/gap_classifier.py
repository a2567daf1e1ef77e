"""Gap detection and gap-aware resampling of a merged relative-orientation stream.

Classification per grid point, with ``interval = 1000 / target_hz``:

- within ``0.5 x interval`` of an existing sample  -> REAL, sample used as is
- inside a gap shorter than ``2 x interval``        -> SLERP, INTERPOLATED
- inside a gap of ``2 x interval`` or more, or past
  the last sample                                   -> hold last value, MISSING

Holding instead of interpolating across a long disconnect keeps the output
from showing smooth motion that never happened.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config.constants import (
    DEFAULT_TARGET_HZ,
    GAP_THRESHOLD_FACTOR,
    JITTER_TOLERANCE_FACTOR,
)
from ..math.quaternion import slerp
from .grid import BracketCursor, generate_time_grid, grid_interval
from .types import (
    CombinedSample,
    PipelineError,
    ResampleResult,
    ResampleStats,
    SampleFlag,
    UniformSample,
)

__all__ = [
    "GapType",
    "Gap",
    "ValidationResult",
    "validate_samples",
    "GapPolicy",
    "PointKind",
    "classify_point",
    "fill_gaps",
]

logger = logging.getLogger(__name__)


class GapType(str, Enum):
    NONE = "none"
    SMALL = "small"
    LARGE = "large"


@dataclass(frozen=True)
class Gap:
    after_index: int
    start_time: float
    end_time: float
    duration: float
    missing_samples: int
    type: GapType


@dataclass
class ValidationResult:
    is_uniform: bool
    expected_interval: float
    actual_sample_count: int
    expected_sample_count: int
    gaps: List[Gap] = field(default_factory=list)
    small_gap_count: int = 0
    large_gap_count: int = 0


@dataclass(frozen=True)
class GapPolicy:
    interval: float
    gap_threshold: float
    tolerance: float

    @classmethod
    def for_rate(cls, target_hz: float) -> "GapPolicy":
        interval = grid_interval(target_hz)
        return cls(
            interval=interval,
            gap_threshold=GAP_THRESHOLD_FACTOR * interval,
            tolerance=JITTER_TOLERANCE_FACTOR * interval,
        )


def validate_samples(timestamps: Sequence[float], target_hz: float = DEFAULT_TARGET_HZ) -> ValidationResult:
    """Report gaps between consecutive (sorted) timestamps.

    A gap is anything longer than ``interval + tolerance``; it is SMALL below
    the gap threshold and LARGE at or above it.
    """
    policy = GapPolicy.for_rate(target_hz)
    ts = np.asarray(timestamps, dtype=float)
    if ts.size < 2:
        return ValidationResult(
            is_uniform=True,
            expected_interval=policy.interval,
            actual_sample_count=int(ts.size),
            expected_sample_count=int(ts.size),
        )

    gaps: List[Gap] = []
    small = large = 0
    dts = np.diff(ts)
    for i in np.flatnonzero(dts > policy.interval + policy.tolerance):
        dt = float(dts[i])
        kind = GapType.LARGE if dt >= policy.gap_threshold else GapType.SMALL
        gaps.append(Gap(
            after_index=int(i),
            start_time=float(ts[i]),
            end_time=float(ts[i + 1]),
            duration=dt,
            missing_samples=int(round(dt / policy.interval)) - 1,
            type=kind,
        ))
        if kind is GapType.SMALL:
            small += 1
        else:
            large += 1

    duration = float(ts[-1] - ts[0])
    return ValidationResult(
        is_uniform=not gaps,
        expected_interval=policy.interval,
        actual_sample_count=int(ts.size),
        expected_sample_count=int(round(duration / policy.interval)) + 1,
        gaps=gaps,
        small_gap_count=small,
        large_gap_count=large,
    )


class PointKind(Enum):
    REAL = "real"
    SMALL_GAP = "small_gap"
    LARGE_GAP = "large_gap"
    LEADING = "leading"     # before the stream's first sample
    TRAILING = "trailing"   # after the stream's last sample

    @property
    def flag(self) -> SampleFlag:
        if self is PointKind.REAL:
            return SampleFlag.REAL
        if self is PointKind.SMALL_GAP:
            return SampleFlag.INTERPOLATED
        return SampleFlag.MISSING


def classify_point(
    t: float,
    prev_t: Optional[float],
    next_t: Optional[float],
    policy: GapPolicy,
) -> Tuple[PointKind, bool]:
    """Classify grid time ``t`` against its bracketing sample times.

    Returns ``(kind, use_next)``; ``use_next`` says which bracket a REAL
    point takes its value from (the nearer one, earlier on ties).
    """
    if prev_t is None and next_t is None:
        raise PipelineError("classify_point needs at least one bracketing sample")
    d_prev = abs(t - prev_t) if prev_t is not None else np.inf
    d_next = abs(next_t - t) if next_t is not None else np.inf
    if min(d_prev, d_next) < policy.tolerance:
        return PointKind.REAL, d_next < d_prev
    if prev_t is None or t < prev_t:
        return PointKind.LEADING, False
    if next_t is None or t > next_t:
        return PointKind.TRAILING, False
    if next_t - prev_t >= policy.gap_threshold:
        return PointKind.LARGE_GAP, False
    return PointKind.SMALL_GAP, False


def _slerp_nullable(q0: Optional[np.ndarray], q1: Optional[np.ndarray], u: float) -> Optional[np.ndarray]:
    if q0 is None:
        return q1
    if q1 is None:
        return q0
    return slerp(q0, q1, u)


def _side_flag(q: Optional[np.ndarray], kind: PointKind) -> SampleFlag:
    return SampleFlag.MISSING if q is None else kind.flag


def fill_gaps(samples: Sequence[CombinedSample], target_hz: float = DEFAULT_TARGET_HZ) -> ResampleResult:
    """Resample a merged stream onto the uniform grid with gap handling."""
    if not samples:
        return ResampleResult()

    ordered = sorted(samples, key=lambda s: s.t)
    ts = np.array([s.t for s in ordered], dtype=float)
    policy = GapPolicy.for_rate(target_hz)
    validation = validate_samples(ts, target_hz)
    grid = generate_time_grid(ts[0], ts[-1], target_hz)

    stats = ResampleStats(
        input_count=len(samples),
        small_gaps_found=validation.small_gap_count,
        large_gaps_found=validation.large_gap_count,
    )
    out: List[UniformSample] = []
    cursor = BracketCursor(ts)
    last_left: Optional[np.ndarray] = None
    last_right: Optional[np.ndarray] = None

    for t in grid:
        t = float(t)
        p, n = cursor.advance(t)
        before = ordered[p]
        after = ordered[n] if n is not None else None
        kind, use_next = classify_point(t, before.t, after.t if after is not None else None, policy)

        if kind is PointKind.REAL:
            src = after if use_next else before
            left, right = src.left, src.right
        elif kind is PointKind.SMALL_GAP:
            u = (t - before.t) / (after.t - before.t)
            left = _slerp_nullable(before.left, after.left, u)
            right = _slerp_nullable(before.right, after.right, u)
            stats.interpolated_count += 1
        else:
            left = last_left if last_left is not None else before.left
            right = last_right if last_right is not None else before.right
            stats.missing_count += 1

        if left is not None:
            last_left = left
        if right is not None:
            last_right = right
        out.append(UniformSample(
            t=t,
            left=left,
            right=right,
            left_flag=_side_flag(left, kind),
            right_flag=_side_flag(right, kind),
        ))

    stats.output_count = len(out)
    logger.debug(
        "fill_gaps: %d in -> %d out (%d interpolated, %d missing, %d small / %d large gaps)",
        stats.input_count, stats.output_count, stats.interpolated_count,
        stats.missing_count, stats.small_gaps_found, stats.large_gaps_found,
    )
    return ResampleResult(samples=out, stats=stats)
