"""Default joint packing for chunks.

Byte-level compression belongs to the storage side; the default codec only
flattens a joint's quaternions so a chunk can be handed off as is. Any
callable ``codec(quats) -> payload`` can replace it in ``chunk_samples``.
"""
from __future__ import annotations
from typing import Callable, Iterable, List, Optional, Sequence

import numpy as np

from ..math.quaternion import IDENTITY
from .types import Chunk, SampleFlag, UniformSample

__all__ = ["Codec", "pack_joint", "unpack_joint", "unpack_chunk", "merge_chunks"]

Codec = Callable[[Sequence[Optional[np.ndarray]]], object]


def pack_joint(quats: Sequence[Optional[np.ndarray]]) -> np.ndarray:
    """Flatten to ``[w, x, y, z, w, x, ...]``; identity stands in for absent samples.

    A joint with no samples at all packs to an empty array.
    """
    if all(q is None for q in quats):
        return np.zeros(0, dtype=float)
    rows = [IDENTITY if q is None else np.asarray(q, dtype=float) for q in quats]
    return np.concatenate(rows)


def unpack_joint(payload, sample_count: int) -> List[Optional[np.ndarray]]:
    arr = np.asarray(payload, dtype=float)
    if arr.size == 0:
        return [None] * sample_count
    Q = arr.reshape(-1, 4)
    if Q.shape[0] != sample_count:
        raise ValueError(f"payload holds {Q.shape[0]} quaternions, expected {sample_count}")
    return list(Q)


def unpack_chunk(chunk: Chunk) -> List[UniformSample]:
    """Rebuild the uniform samples of a chunk packed with ``pack_joint``."""
    n = chunk.sample_count
    interval = 1000.0 / chunk.sample_rate
    left = unpack_joint(chunk.compressed_left, n)
    right = unpack_joint(chunk.compressed_right, n)
    return [
        UniformSample(
            t=chunk.start_time + i * interval,
            left=left[i],
            right=right[i],
            left_flag=SampleFlag(int(chunk.left_flags[i])),
            right_flag=SampleFlag(int(chunk.right_flags[i])),
        )
        for i in range(n)
    ]


def merge_chunks(chunks: Iterable[Chunk]) -> List[UniformSample]:
    """Concatenate a session's chunks back into one sample list."""
    ordered = sorted(chunks, key=lambda c: c.chunk_index)
    if not ordered:
        return []
    sessions = {c.session_id for c in ordered}
    if len(sessions) > 1:
        raise ValueError(f"chunks span several sessions: {sorted(sessions)}")
    indices = [c.chunk_index for c in ordered]
    if indices != list(range(len(ordered))):
        raise ValueError(f"chunk indices are not contiguous from 0: {indices}")
    out: List[UniformSample] = []
    for c in ordered:
        out.extend(unpack_chunk(c))
    return out
