from __future__ import annotations
import numpy as np

from ..config.constants import QUAT_EPS, SLERP_LINEAR_THRESHOLD

__all__ = [
    "IDENTITY",
    "as_quat",
    "normalize_quat",
    "quat_conjugate",
    "quat_inverse",
    "quat_multiply",
    "relative_quat",
    "slerp",
    "quat_from_axis_angle",
]

IDENTITY = np.array([1.0, 0.0, 0.0, 0.0])


def as_quat(q) -> np.ndarray:
    """Coerce a ``[w, x, y, z]`` sequence (or a mapping with w/x/y/z keys) to a float array."""
    if isinstance(q, dict):
        q = (q["w"], q["x"], q["y"], q["z"])
    arr = np.asarray(q, dtype=float)
    if arr.shape[-1] != 4:
        raise ValueError("Quaternion must have shape (4,) or (N,4)")
    return arr


def normalize_quat(q: np.ndarray) -> np.ndarray:
    """Normalize quaternion(s) to unit norm.

    Zero-norm or non-finite rows fall back to identity instead of raising, so
    malformed sensor output never aborts a batch.
    """
    q = np.asarray(q, dtype=float)
    n = np.linalg.norm(q, axis=-1, keepdims=True)
    bad = ~np.isfinite(n) | (n < QUAT_EPS)
    if q.ndim == 1:
        if bad.item():
            return IDENTITY.copy()
        return q / n
    out = q / np.where(bad, 1.0, n)
    if np.any(bad):
        out[bad[:, 0]] = IDENTITY
    return out


def quat_conjugate(q: np.ndarray) -> np.ndarray:
    q = np.asarray(q, dtype=float)
    return q * np.array([1.0, -1.0, -1.0, -1.0])


def quat_inverse(q: np.ndarray) -> np.ndarray:
    """q^{-1} = conj(q) / ||q||^2 for shapes (4,) or (N,4)."""
    q = np.asarray(q, dtype=float)
    norm2 = np.sum(q * q, axis=-1, keepdims=True)
    if np.any(norm2 < QUAT_EPS):
        raise ValueError("Cannot invert zero-norm quaternion")
    return quat_conjugate(q) / norm2


def quat_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """Hamilton product q1 * q2; (4,) and (N,4) inputs broadcast."""
    q1 = np.asarray(q1, dtype=float)
    q2 = np.asarray(q2, dtype=float)
    w1, x1, y1, z1 = q1[..., 0], q1[..., 1], q1[..., 2], q1[..., 3]
    w2, x2, y2, z2 = q2[..., 0], q2[..., 1], q2[..., 2], q2[..., 3]
    return np.stack(
        [
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        ],
        axis=-1,
    )


def relative_quat(q_proximal: np.ndarray, q_distal: np.ndarray) -> np.ndarray:
    """Distal orientation expressed in the proximal frame: inverse(proximal) * distal.

    Both inputs are normalized first, so the result is a unit quaternion.
    """
    qp = normalize_quat(q_proximal)
    qd = normalize_quat(q_distal)
    return quat_multiply(quat_inverse(qp), qd)


def slerp(q0: np.ndarray, q1: np.ndarray, u: float) -> np.ndarray:
    """Spherical linear interpolation along the shortest arc."""
    q0 = normalize_quat(q0)
    q1c = normalize_quat(q1)
    dot = float(np.dot(q0, q1c))
    if dot < 0.0:
        q1c = -q1c
        dot = -dot
    if dot > SLERP_LINEAR_THRESHOLD:
        v = q0 + u * (q1c - q0)
        return v / (np.linalg.norm(v) + QUAT_EPS)
    th0 = np.arccos(np.clip(dot, -1.0, 1.0))
    s0 = np.sin((1.0 - u) * th0) / np.sin(th0)
    s1 = np.sin(u * th0) / np.sin(th0)
    return s0 * q0 + s1 * q1c


def quat_from_axis_angle(axis, angle_deg: float) -> np.ndarray:
    ax = np.asarray(axis, dtype=float)
    ax = ax / (np.linalg.norm(ax) + QUAT_EPS)
    half = np.deg2rad(angle_deg) / 2.0
    return np.concatenate([[np.cos(half)], np.sin(half) * ax])
