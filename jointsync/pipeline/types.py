"""Sample, chunk, and status types shared by every pipeline stage.

Quaternions are plain ``np.ndarray`` values of shape (4,) in ``[w, x, y, z]``
order; an absent joint value is ``None``.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from enum import Enum, IntEnum
from typing import List, Optional

import numpy as np

from ..config.constants import (
    DEVICE_LEFT_SHIN,
    DEVICE_LEFT_THIGH,
    DEVICE_RIGHT_SHIN,
    DEVICE_RIGHT_THIGH,
)

__all__ = [
    "PipelineError",
    "SessionStateError",
    "SensorId",
    "SampleFlag",
    "RawSample",
    "JointSample",
    "CombinedSample",
    "UniformSample",
    "ResampleStats",
    "ResampleResult",
    "Chunk",
]


class PipelineError(RuntimeError):
    """Internal invariant violation; aborts the batch pass."""


class SessionStateError(RuntimeError):
    """Recording session used outside its start/stop lifecycle."""


class SensorId(str, Enum):
    LEFT_SHIN = "left_shin"
    LEFT_THIGH = "left_thigh"
    RIGHT_SHIN = "right_shin"
    RIGHT_THIGH = "right_thigh"

    @property
    def side(self) -> str:
        return "left" if self in (SensorId.LEFT_SHIN, SensorId.LEFT_THIGH) else "right"

    @property
    def is_thigh(self) -> bool:
        return self in (SensorId.LEFT_THIGH, SensorId.RIGHT_THIGH)

    @property
    def device_code(self) -> int:
        return _CODE_BY_SENSOR[self]

    @classmethod
    def parse(cls, value) -> "SensorId":
        """Accept a member, its value/name (any case), or a device byte code."""
        if isinstance(value, cls):
            return value
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return _SENSOR_BY_CODE[int(value)]
            except KeyError:
                raise ValueError(f"Unknown device code 0x{int(value):x}") from None
        s = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        if s.startswith("0x"):
            return cls.parse(int(s, 16))
        if s.isdigit():
            return cls.parse(int(s))
        for member in cls:
            if s in (member.value, member.name.lower(), member.value.replace("_", "")):
                return member
        raise ValueError(f"Unknown sensor id {value!r}")


_CODE_BY_SENSOR = {
    SensorId.LEFT_SHIN: DEVICE_LEFT_SHIN,
    SensorId.LEFT_THIGH: DEVICE_LEFT_THIGH,
    SensorId.RIGHT_SHIN: DEVICE_RIGHT_SHIN,
    SensorId.RIGHT_THIGH: DEVICE_RIGHT_THIGH,
}
_SENSOR_BY_CODE = {v: k for k, v in _CODE_BY_SENSOR.items()}


class SampleFlag(IntEnum):
    REAL = 0
    INTERPOLATED = 1
    MISSING = 2


@dataclass(frozen=True)
class RawSample:
    sensor_id: SensorId
    timestamp_ms: float
    quaternion: np.ndarray


@dataclass(frozen=True)
class JointSample:
    """Relative orientation of one joint at a thigh timestamp."""
    t: float
    q: np.ndarray


@dataclass(frozen=True)
class CombinedSample:
    t: float
    left: Optional[np.ndarray]
    right: Optional[np.ndarray]

    def __post_init__(self):
        if self.left is None and self.right is None:
            raise PipelineError(f"CombinedSample at t={self.t} has neither side")


@dataclass(frozen=True)
class UniformSample:
    t: float
    left: Optional[np.ndarray]
    right: Optional[np.ndarray]
    left_flag: SampleFlag = SampleFlag.REAL
    right_flag: SampleFlag = SampleFlag.REAL


@dataclass
class ResampleStats:
    input_count: int = 0
    output_count: int = 0
    interpolated_count: int = 0
    missing_count: int = 0
    small_gaps_found: int = 0
    large_gaps_found: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ResampleResult:
    samples: List[UniformSample] = field(default_factory=list)
    stats: ResampleStats = field(default_factory=ResampleStats)


@dataclass(frozen=True)
class Chunk:
    session_id: str
    chunk_index: int
    total_chunks: int
    start_time: float
    end_time: float
    sample_count: int
    sample_rate: float
    active_joints: tuple
    compressed_left: object
    compressed_right: object
    left_flags: np.ndarray
    right_flags: np.ndarray
