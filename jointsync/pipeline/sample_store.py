from __future__ import annotations
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from ..math.quaternion import as_quat
from .types import SensorId

__all__ = ["SampleStore", "build_stores"]


class SampleStore:
    """Per-sensor buffer of (timestamp_ms, quaternion) pairs.

    Ingestion only appends. Samples delivered out of order are put in
    timestamp order by a stable sort the first time the store is read after a
    write, so every query sees a fully time-ordered view. Queries on an empty
    store return ``None``.
    """

    def __init__(self, sensor_id: Optional[SensorId] = None):
        self.sensor_id = SensorId.parse(sensor_id) if sensor_id is not None else None
        self._t: list = []
        self._q: list = []
        self._in_order = True
        self._view: Optional[Tuple[np.ndarray, np.ndarray]] = None

    def add(self, timestamp_ms: float, quaternion) -> None:
        t = float(timestamp_ms)
        if self._t and t < self._t[-1]:
            self._in_order = False
        self._t.append(t)
        self._q.append(as_quat(quaternion))
        self._view = None

    def extend(self, samples: Iterable[Tuple[float, object]]) -> None:
        for t, q in samples:
            self.add(t, q)

    def _sorted_view(self) -> Tuple[np.ndarray, np.ndarray]:
        if self._view is None:
            t = np.asarray(self._t, dtype=float)
            q = np.asarray(self._q, dtype=float).reshape(-1, 4)
            if not self._in_order:
                order = np.argsort(t, kind="stable")
                t, q = t[order], q[order]
                self._t = t.tolist()
                self._q = list(q)
                self._in_order = True
            t.flags.writeable = False
            q.flags.writeable = False
            self._view = (t, q)
        return self._view

    @property
    def timestamps(self) -> np.ndarray:
        return self._sorted_view()[0]

    @property
    def quaternions(self) -> np.ndarray:
        return self._sorted_view()[1]

    def __len__(self) -> int:
        return len(self._t)

    def is_empty(self) -> bool:
        return not self._t

    def oldest_timestamp(self) -> Optional[float]:
        if self.is_empty():
            return None
        return float(self.timestamps[0])

    def newest_timestamp(self) -> Optional[float]:
        if self.is_empty():
            return None
        return float(self.timestamps[-1])

    def sample_at(self, index: int) -> Optional[Tuple[float, np.ndarray]]:
        if index is None or index < 0 or index >= len(self):
            return None
        t, q = self._sorted_view()
        return float(t[index]), q[index]

    def closest_index(self, timestamp_ms: float) -> Optional[int]:
        """Index of the sample nearest in time; ties go to the earlier sample."""
        if self.is_empty():
            return None
        ts = self.timestamps
        i = int(np.searchsorted(ts, timestamp_ms, side="left"))
        if i == 0:
            return 0
        if i >= ts.size:
            return ts.size - 1
        if (timestamp_ms - ts[i - 1]) <= (ts[i] - timestamp_ms):
            return i - 1
        return i

    def bracket_indices(self, timestamp_ms: float) -> Tuple[Optional[int], Optional[int]]:
        """(prev, next) with ts[prev] <= t < ts[next]; either side may be None."""
        if self.is_empty():
            return None, None
        ts = self.timestamps
        i = int(np.searchsorted(ts, timestamp_ms, side="right"))
        prev_i = i - 1 if i > 0 else None
        next_i = i if i < ts.size else None
        return prev_i, next_i

    def clear(self) -> None:
        self._t = []
        self._q = []
        self._in_order = True
        self._view = None

    def __repr__(self) -> str:
        sid = self.sensor_id.value if self.sensor_id else None
        return f"SampleStore(sensor={sid!r}, size={len(self)})"


def build_stores(raw: Iterable) -> Dict[SensorId, SampleStore]:
    """Route raw samples into one store per sensor (all four keys always present)."""
    stores = {sid: SampleStore(sid) for sid in SensorId}
    for s in raw:
        stores[SensorId.parse(s.sensor_id)].add(s.timestamp_ms, s.quaternion)
    return stores
