from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.spatial.transform import Rotation as _Rot

from ..math.quaternion import normalize_quat
from .types import SampleFlag, UniformSample

__all__ = [
    "AngleSample",
    "quaternion_to_angle",
    "quaternions_to_angles",
    "to_angle_samples",
    "to_angle_frame",
]

# position in scipy's intrinsic "ZYX" output: [yaw, pitch, roll]
_AXIS_INDEX = {"z": 0, "y": 1, "x": 2}


@dataclass(frozen=True)
class AngleSample:
    t: float
    relative_s: float
    left: Optional[float]
    right: Optional[float]
    left_flag: SampleFlag
    right_flag: SampleFlag


def _axis_index(axis: str) -> int:
    try:
        return _AXIS_INDEX[str(axis).lower()]
    except KeyError:
        raise ValueError(f"axis must be one of 'x', 'y', 'z'; got {axis!r}") from None


def quaternions_to_angles(Q: np.ndarray, axis: str = "y") -> np.ndarray:
    """Angles in degrees about ``axis`` for quaternions (N,4) in ``[w, x, y, z]``.

    Uses the aerospace ZYX decomposition: ``x`` is roll, ``y`` pitch and
    ``z`` yaw. Pitch is confined to [-90, 90].
    """
    idx = _axis_index(axis)
    Q = normalize_quat(np.atleast_2d(np.asarray(Q, dtype=float)))
    if Q.shape[0] == 0:
        return np.zeros(0, dtype=float)
    # scipy wants scalar-last
    rot = _Rot.from_quat(Q[:, [1, 2, 3, 0]])
    return rot.as_euler("ZYX", degrees=True)[:, idx]


def quaternion_to_angle(q: np.ndarray, axis: str = "y") -> float:
    return float(quaternions_to_angles(np.asarray(q, dtype=float)[None, :], axis)[0])


def _side_angles(samples: Sequence[UniformSample], side: str, axis: str) -> List[Optional[float]]:
    qs = [getattr(s, side) for s in samples]
    present = [i for i, q in enumerate(qs) if q is not None]
    out: List[Optional[float]] = [None] * len(qs)
    if present:
        vals = quaternions_to_angles(np.stack([qs[i] for i in present]), axis)
        for i, v in zip(present, vals):
            out[i] = float(v)
    return out


def to_angle_samples(samples: Sequence[UniformSample], axis: str = "y") -> List[AngleSample]:
    """Per-sample joint angles with time relative to the first sample in seconds."""
    if not samples:
        return []
    t0 = samples[0].t
    left = _side_angles(samples, "left", axis)
    right = _side_angles(samples, "right", axis)
    return [
        AngleSample(
            t=s.t,
            relative_s=(s.t - t0) / 1000.0,
            left=left[i],
            right=right[i],
            left_flag=s.left_flag,
            right_flag=s.right_flag,
        )
        for i, s in enumerate(samples)
    ]


def to_angle_frame(samples: Sequence[UniformSample], axis: str = "y") -> pd.DataFrame:
    """Angle table with columns t_ms, time_s, left_deg, right_deg, left_flag, right_flag."""
    rows = to_angle_samples(samples, axis)
    df = pd.DataFrame({
        "t_ms": [r.t for r in rows],
        "time_s": [r.relative_s for r in rows],
        "left_deg": pd.array([r.left for r in rows], dtype="Float64"),
        "right_deg": pd.array([r.right for r in rows], dtype="Float64"),
        "left_flag": [r.left_flag.name for r in rows],
        "right_flag": [r.right_flag.name for r in rows],
    })
    return df
