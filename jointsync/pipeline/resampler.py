from __future__ import annotations
import logging
from enum import Enum
from typing import List, Mapping, Sequence, Union

from ..config.constants import DEFAULT_TARGET_HZ
from ..math.quaternion import relative_quat
from .gap_classifier import GapPolicy, PointKind, classify_point, fill_gaps, validate_samples
from .grid import BracketCursor, generate_time_grid, slerp_to_time
from .joint_aligner import align_joint
from .sample_store import SampleStore
from .side_merger import merge_sides
from .types import (
    CombinedSample,
    ResampleResult,
    ResampleStats,
    SampleFlag,
    SensorId,
    UniformSample,
)

__all__ = [
    "ResampleStrategy",
    "JOINT_SENSORS",
    "recording_window",
    "resample_grid_snap",
    "resample_direct",
    "align_and_merge",
    "resample",
]

logger = logging.getLogger(__name__)

# side -> (proximal, distal)
JOINT_SENSORS = {
    "left": (SensorId.LEFT_THIGH, SensorId.LEFT_SHIN),
    "right": (SensorId.RIGHT_THIGH, SensorId.RIGHT_SHIN),
}

_SEVERITY = {
    PointKind.REAL: 0,
    PointKind.SMALL_GAP: 1,
    PointKind.LARGE_GAP: 2,
    PointKind.LEADING: 2,
    PointKind.TRAILING: 2,
}


class ResampleStrategy(str, Enum):
    GRID_SNAP = "grid_snap"   # SLERP each sensor to the grid, then take the relative quaternion
    DIRECT = "direct"         # SLERP pre-merged relative quaternions with gap handling

    @classmethod
    def parse(cls, value) -> "ResampleStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown resample strategy {value!r}; expected one of {[m.value for m in cls]}") from None


def recording_window(stores: Mapping[SensorId, SampleStore]):
    """(earliest, latest) timestamp across all non-empty stores, or None."""
    olds = [s.oldest_timestamp() for s in stores.values() if not s.is_empty()]
    news = [s.newest_timestamp() for s in stores.values() if not s.is_empty()]
    if not olds:
        return None
    return min(olds), max(news)


class _SensorTrack:
    """One sensor's samples walked along the grid."""

    def __init__(self, store: SampleStore):
        self.store = store
        self.cursor = BracketCursor(store.timestamps)

    def at(self, t: float, policy: GapPolicy, hold_large_gaps: bool):
        p, n = self.cursor.advance(t)
        prev = self.store.sample_at(p)
        nxt = self.store.sample_at(n) if n is not None else None
        kind, use_next = classify_point(t, prev[0], nxt[0] if nxt is not None else None, policy)
        in_large_gap = nxt is not None and nxt[0] - prev[0] >= policy.gap_threshold
        if in_large_gap and hold_large_gaps:
            if kind is PointKind.REAL:
                return (nxt if use_next else prev)[1], kind
            if kind is PointKind.LARGE_GAP:
                return prev[1], kind
        if kind is PointKind.LARGE_GAP:
            # spanned, not held
            return slerp_to_time(prev, nxt, t), PointKind.SMALL_GAP
        return slerp_to_time(prev, nxt, t), kind


def resample_grid_snap(
    stores: Mapping[SensorId, SampleStore],
    target_hz: float = DEFAULT_TARGET_HZ,
    hold_large_gaps: bool = True,
) -> ResampleResult:
    """Per-sensor grid snap: SLERP every raw stream to each grid time, then relate.

    Each sensor is interpolated on its own clock before the relative
    orientation is formed. The grid spans the earliest to the latest sample of
    any sensor. A joint missing either sensor stays ``None`` throughout. Side
    flags take the worse classification of the joint's two sensors.

    Inside a large gap a sensor holds its last sample (MISSING), and points
    within tolerance of the sample after the gap take that sample as is.
    ``hold_large_gaps=False`` SLERPs across the gap instead and flags those
    points INTERPOLATED, so MISSING always means a held value.
    """
    window = recording_window(stores)
    if window is None:
        return ResampleResult()
    policy = GapPolicy.for_rate(target_hz)
    grid = generate_time_grid(window[0], window[1], target_hz)

    stats = ResampleStats(input_count=sum(len(s) for s in stores.values()))
    for store in stores.values():
        if not store.is_empty():
            v = validate_samples(store.timestamps, target_hz)
            stats.small_gaps_found += v.small_gap_count
            stats.large_gaps_found += v.large_gap_count

    tracks = {}
    for side, (prox, dist) in JOINT_SENSORS.items():
        sp, sd = stores.get(prox), stores.get(dist)
        if sp is None or sd is None or sp.is_empty() or sd.is_empty():
            tracks[side] = None
        else:
            tracks[side] = (_SensorTrack(sp), _SensorTrack(sd))

    out: List[UniformSample] = []
    for t in grid:
        t = float(t)
        values = {}
        flags = {}
        for side, pair in tracks.items():
            if pair is None:
                values[side], flags[side] = None, SampleFlag.MISSING
                continue
            q_prox, k_prox = pair[0].at(t, policy, hold_large_gaps)
            q_dist, k_dist = pair[1].at(t, policy, hold_large_gaps)
            kind = max((k_prox, k_dist), key=_SEVERITY.__getitem__)
            values[side] = relative_quat(q_prox, q_dist)
            flags[side] = kind.flag

        present = [flags[side] for side, pair in tracks.items() if pair is not None]
        if SampleFlag.MISSING in present:
            stats.missing_count += 1
        elif SampleFlag.INTERPOLATED in present:
            stats.interpolated_count += 1
        out.append(UniformSample(
            t=t,
            left=values["left"],
            right=values["right"],
            left_flag=flags["left"],
            right_flag=flags["right"],
        ))

    if all(pair is None for pair in tracks.values()):
        out = []
    stats.output_count = len(out)
    return ResampleResult(samples=out, stats=stats)


def align_and_merge(stores: Mapping[SensorId, SampleStore]) -> List[CombinedSample]:
    """Nearest-neighbour thigh/shin alignment per joint, then left/right merge."""
    empty = SampleStore()
    joints = {}
    for side, (prox, dist) in JOINT_SENSORS.items():
        joints[side] = align_joint(stores.get(prox, empty), stores.get(dist, empty))
        logger.debug("aligned %s joint: %d samples", side, len(joints[side]))
    return merge_sides(joints["left"], joints["right"])


def resample_direct(combined: Sequence[CombinedSample], target_hz: float = DEFAULT_TARGET_HZ) -> ResampleResult:
    """Direct resampling of a pre-merged stream (gap-aware)."""
    return fill_gaps(combined, target_hz)


def resample(
    source: Union[Mapping[SensorId, SampleStore], Sequence[CombinedSample]],
    target_hz: float = DEFAULT_TARGET_HZ,
    strategy: Union[ResampleStrategy, str] = ResampleStrategy.GRID_SNAP,
    hold_large_gaps: bool = True,
) -> ResampleResult:
    """Resample onto the uniform grid with the chosen strategy.

    ``source`` is either a mapping of per-sensor stores or an already merged
    ``CombinedSample`` sequence. GRID_SNAP needs the raw stores; DIRECT
    accepts either and aligns/merges stores first.
    """
    strategy = ResampleStrategy.parse(strategy)
    is_stores = isinstance(source, Mapping)
    if strategy is ResampleStrategy.GRID_SNAP:
        if not is_stores:
            raise ValueError("GRID_SNAP resampling needs per-sensor stores, not a merged stream")
        return resample_grid_snap(source, target_hz, hold_large_gaps=hold_large_gaps)
    combined = align_and_merge(source) if is_stores else source
    return resample_direct(combined, target_hz)
