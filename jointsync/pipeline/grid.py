from __future__ import annotations
import math
from typing import Optional, Tuple

import numpy as np

from ..config.constants import GRID_ROUNDING_TOL_MS
from ..math.quaternion import slerp
from .types import PipelineError

__all__ = [
    "grid_interval",
    "grid_sample_count",
    "generate_time_grid",
    "BracketCursor",
    "slerp_to_time",
]

Stamped = Tuple[float, np.ndarray]


def grid_interval(target_hz: float) -> float:
    """Grid spacing in milliseconds."""
    hz = float(target_hz)
    if not math.isfinite(hz) or hz <= 0.0:
        raise PipelineError(f"target_hz must be positive, got {target_hz!r}")
    return 1000.0 / hz


def grid_sample_count(start_ms: float, end_ms: float, interval_ms: float) -> int:
    n = math.ceil((end_ms - start_ms) / interval_ms) + 1
    if n < 0:
        raise PipelineError(f"negative grid sample count {n} for [{start_ms}, {end_ms}]")
    return n


def generate_time_grid(start_ms: float, end_ms: float, target_hz: float) -> np.ndarray:
    """Uniform grid ``t_i = start + i * interval`` covering [start, end].

    Points are computed by integer multiplication, never by accumulation, so
    long recordings do not drift. Points beyond ``end`` (plus a rounding
    tolerance) are dropped.
    """
    interval = grid_interval(target_hz)
    n = grid_sample_count(start_ms, end_ms, interval)
    t = float(start_ms) + np.arange(n, dtype=float) * interval
    return t[t <= end_ms + GRID_ROUNDING_TOL_MS]


class BracketCursor:
    """Forward-only bracket search over sorted timestamps.

    Queries must be non-decreasing; total work over a whole grid is O(n).
    ``advance(t)`` returns ``(prev, next)`` indices where ``prev`` is the last
    sample at or before ``t`` (clamped to 0) and ``next`` is ``prev + 1`` or
    ``None`` past the end.
    """

    def __init__(self, timestamps: np.ndarray):
        self.ts = np.asarray(timestamps, dtype=float)
        self.idx = 0

    def advance(self, t: float) -> Tuple[Optional[int], Optional[int]]:
        n = self.ts.size
        if n == 0:
            return None, None
        while self.idx < n - 1 and self.ts[self.idx + 1] <= t:
            self.idx += 1
        nxt = self.idx + 1 if self.idx + 1 < n else None
        return self.idx, nxt


def slerp_to_time(prev: Optional[Stamped], nxt: Optional[Stamped], t: float) -> Optional[np.ndarray]:
    """Interpolate a bracketed stream to exactly ``t``.

    No extrapolation: at or before ``prev`` returns ``prev``, at or after
    ``nxt`` returns ``nxt``. A zero time delta returns the later sample.
    """
    if prev is None and nxt is None:
        return None
    if prev is None:
        return nxt[1]
    if nxt is None:
        return prev[1]
    t0, q0 = prev
    t1, q1 = nxt
    if t <= t0:
        return q0
    if t >= t1:
        return q1
    dt = t1 - t0
    if dt <= 0.0:
        return q1
    return slerp(q0, q1, (t - t0) / dt)
