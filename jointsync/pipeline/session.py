"""Caller-owned recording lifecycle.

A ``RecordingSession`` collects raw samples while recording and hands a
frozen snapshot to the batch pipeline after ``stop()``. Ingestion never
waits on processing.
"""
from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..config.constants import DEFAULT_TARGET_HZ
from ..math.quaternion import as_quat
from .chunker import generate_session_id
from .pipeline import PipelineResult, run_pipeline
from .resampler import ResampleStrategy
from .types import RawSample, SensorId, SessionStateError

__all__ = ["RecordingState", "RecordingMetadata", "RecordingSession"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordingState:
    is_recording: bool
    sample_count: int
    duration_ms: float
    start_time: Optional[float]


@dataclass(frozen=True)
class RecordingMetadata:
    start_time: float
    end_time: float
    sample_count: int
    target_hz: float


class RecordingSession:
    def __init__(
        self,
        target_hz: float = DEFAULT_TARGET_HZ,
        session_id: Optional[str] = None,
        max_samples: Optional[int] = None,
    ):
        if max_samples is not None and max_samples <= 0:
            raise ValueError("max_samples must be positive or None")
        self.target_hz = target_hz
        self.max_samples = max_samples
        self._requested_id = session_id
        self.session_id: Optional[str] = session_id
        self._recording = False
        self._buffer: deque = deque(maxlen=max_samples)
        self._first_ts: Optional[float] = None
        self._last_ts: Optional[float] = None

    @property
    def is_recording(self) -> bool:
        return self._recording

    def start(self) -> str:
        """Clear previous data and begin accepting samples; returns the session id."""
        self.clear()
        self.session_id = self._requested_id or generate_session_id()
        self._recording = True
        logger.info("recording started: %s", self.session_id)
        return self.session_id

    def stop(self) -> None:
        if not self._recording:
            return
        self._recording = False
        logger.info("recording stopped: %s (%d samples)", self.session_id, len(self._buffer))

    def push(self, sensor_id, timestamp_ms: float, quaternion) -> bool:
        """Append one sample. Returns False when not recording or the sensor id is unknown."""
        if not self._recording:
            return False
        try:
            sid = SensorId.parse(sensor_id)
        except ValueError:
            logger.warning("ignoring sample from unknown sensor %r", sensor_id)
            return False
        t = float(timestamp_ms)
        self._buffer.append(RawSample(sensor_id=sid, timestamp_ms=t, quaternion=as_quat(quaternion)))
        if self._first_ts is None:
            self._first_ts = t
        if self._last_ts is None or t > self._last_ts:
            self._last_ts = t
        return True

    def push_batch(self, samples: Iterable[RawSample]) -> int:
        """Append many samples; returns how many were accepted."""
        if not self._recording:
            return 0
        return sum(1 for s in samples if self.push(s.sensor_id, s.timestamp_ms, s.quaternion))

    def raw_samples(self) -> List[RawSample]:
        """Timestamp-sorted copy of the buffered samples."""
        return sorted(self._buffer, key=lambda s: s.timestamp_ms)

    def __len__(self) -> int:
        return len(self._buffer)

    def state(self) -> RecordingState:
        duration = 0.0
        if self._first_ts is not None and self._last_ts is not None:
            duration = self._last_ts - self._first_ts
        return RecordingState(
            is_recording=self._recording,
            sample_count=len(self._buffer),
            duration_ms=duration,
            start_time=self._first_ts,
        )

    def metadata(self) -> Optional[RecordingMetadata]:
        if not self._buffer:
            return None
        ts = [s.timestamp_ms for s in self._buffer]
        return RecordingMetadata(
            start_time=min(ts),
            end_time=max(ts),
            sample_count=len(ts),
            target_hz=self.target_hz,
        )

    def swap(self) -> List[RawSample]:
        """Hand out the in-flight batch and keep recording into a fresh buffer."""
        batch = self.raw_samples()
        self._buffer = deque(maxlen=self.max_samples)
        logger.info("swapped out %d samples from %s", len(batch), self.session_id)
        return batch

    def process(
        self,
        strategy=ResampleStrategy.GRID_SNAP,
        target_hz: Optional[float] = None,
        **kwargs,
    ) -> PipelineResult:
        """Run the batch pipeline over the frozen snapshot. Not allowed while recording.

        ``target_hz`` defaults to the session rate; other keyword arguments go
        to ``run_pipeline``. The session id is always the session's own.
        """
        if self._recording:
            raise SessionStateError("stop() the session before processing")
        return run_pipeline(
            self.raw_samples(),
            target_hz=self.target_hz if target_hz is None else target_hz,
            strategy=strategy,
            session_id=self.session_id,
            **kwargs,
        )

    def clear(self) -> None:
        self._recording = False
        self._buffer = deque(maxlen=self.max_samples)
        self._first_ts = None
        self._last_ts = None
        self.session_id = self._requested_id
