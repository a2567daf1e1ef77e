from __future__ import annotations
import math
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from ..config.constants import (
    CHUNK_META_OVERHEAD_BYTES,
    DEFAULT_TARGET_HZ,
    JOINT_LEFT,
    JOINT_RIGHT,
    SAMPLES_PER_CHUNK,
)
from .codec import Codec, pack_joint
from .types import Chunk, PipelineError, UniformSample

__all__ = [
    "ChunkingResult",
    "generate_session_id",
    "chunk_samples",
    "calculate_chunk_count",
    "estimate_chunk_size",
]

_BASE36 = string.digits + string.ascii_lowercase


@dataclass
class ChunkingResult:
    chunks: List[Chunk] = field(default_factory=list)
    session_id: str = ""
    total_chunks: int = 0
    total_samples: int = 0


def generate_session_id() -> str:
    """``session_{epoch_ms}_{6 random base36 chars}``"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"session_{int(time.time() * 1000)}_{suffix}"


def _flags(samples: Sequence[UniformSample], side: str) -> np.ndarray:
    attr = "left_flag" if side == "left" else "right_flag"
    return np.array([int(getattr(s, attr)) for s in samples], dtype=np.uint8)


def chunk_samples(
    samples: Sequence[UniformSample],
    session_id: Optional[str] = None,
    chunk_size: int = SAMPLES_PER_CHUNK,
    sample_rate: float = DEFAULT_TARGET_HZ,
    codec: Codec = pack_joint,
) -> ChunkingResult:
    """Split uniform samples into fixed-size chunks.

    Chunk indices run contiguously from 0 and only the last chunk may be
    short. Every chunk carries its own flag arrays for both joints and the
    one session id of the recording. Zero samples give zero chunks.
    """
    if chunk_size <= 0:
        raise PipelineError(f"chunk_size must be positive, got {chunk_size}")
    sid = session_id or generate_session_id()
    n = len(samples)
    if n == 0:
        return ChunkingResult(chunks=[], session_id=sid, total_chunks=0, total_samples=0)

    total = math.ceil(n / chunk_size)
    chunks: List[Chunk] = []
    for i in range(total):
        part = samples[i * chunk_size:min((i + 1) * chunk_size, n)]
        lefts = [s.left for s in part]
        rights = [s.right for s in part]
        active = []
        if any(q is not None for q in lefts):
            active.append(JOINT_LEFT)
        if any(q is not None for q in rights):
            active.append(JOINT_RIGHT)
        chunks.append(Chunk(
            session_id=sid,
            chunk_index=i,
            total_chunks=total,
            start_time=float(part[0].t),
            end_time=float(part[-1].t),
            sample_count=len(part),
            sample_rate=float(sample_rate),
            active_joints=tuple(active),
            compressed_left=codec(lefts),
            compressed_right=codec(rights),
            left_flags=_flags(part, "left"),
            right_flags=_flags(part, "right"),
        ))
    return ChunkingResult(chunks=chunks, session_id=sid, total_chunks=total, total_samples=n)


def calculate_chunk_count(
    duration_ms: float,
    sample_rate: float = DEFAULT_TARGET_HZ,
    chunk_size: int = SAMPLES_PER_CHUNK,
) -> int:
    total_samples = math.ceil((duration_ms / 1000.0) * sample_rate)
    return math.ceil(total_samples / chunk_size)


def _payload_bytes(payload) -> int:
    if payload is None:
        return 0
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return len(payload)
    return int(np.asarray(payload).nbytes)


def estimate_chunk_size(chunk: Chunk) -> int:
    """Rough in-memory size of a chunk in bytes, for planning uploads."""
    return (
        CHUNK_META_OVERHEAD_BYTES
        + _payload_bytes(chunk.compressed_left)
        + _payload_bytes(chunk.compressed_right)
        + int(chunk.left_flags.nbytes)
        + int(chunk.right_flags.nbytes)
    )
