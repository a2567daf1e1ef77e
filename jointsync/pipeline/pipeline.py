"""Batch pass over a frozen recording: store -> align/merge -> resample -> chunk.

Expected empty or degraded inputs come back as a ``PipelineResult`` with a
non-OK status. Only internal invariant violations raise ``PipelineError``.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from ..config.constants import DEFAULT_TARGET_HZ, SAMPLES_PER_CHUNK
from .chunker import ChunkingResult, chunk_samples
from .codec import Codec, pack_joint
from .resampler import JOINT_SENSORS, ResampleStrategy, align_and_merge, resample_direct, resample_grid_snap
from .sample_store import SampleStore, build_stores
from .types import Chunk, RawSample, ResampleStats, SensorId, UniformSample

__all__ = ["PipelineStatus", "PipelineResult", "missing_sensors", "run_pipeline"]

logger = logging.getLogger(__name__)


class PipelineStatus(str, Enum):
    OK = "ok"
    NO_DATA = "no_data"
    ALIGNMENT_FAILED = "alignment_failed"
    INTERPOLATION_FAILED = "interpolation_failed"
    NOTHING_TO_CHUNK = "nothing_to_chunk"


@dataclass
class PipelineResult:
    status: PipelineStatus
    message: str = ""
    samples: List[UniformSample] = field(default_factory=list)
    chunks: List[Chunk] = field(default_factory=list)
    stats: ResampleStats = field(default_factory=ResampleStats)
    session_id: Optional[str] = None
    missing_sensors: List[SensorId] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is PipelineStatus.OK

    def summary(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "message": self.message,
            "session_id": self.session_id,
            "sample_count": len(self.samples),
            "total_chunks": len(self.chunks),
            "missing_sensors": [s.value for s in self.missing_sensors],
            "stats": self.stats.to_dict(),
        }


def missing_sensors(stores: Dict[SensorId, SampleStore]) -> List[SensorId]:
    return [sid for sid in SensorId if sid not in stores or stores[sid].is_empty()]


def _names(sensors: Iterable[SensorId]) -> str:
    return ", ".join(s.value for s in sensors)


def _joints_complete(stores: Dict[SensorId, SampleStore]) -> List[str]:
    return [
        side for side, (prox, dist) in JOINT_SENSORS.items()
        if not stores[prox].is_empty() and not stores[dist].is_empty()
    ]


def run_pipeline(
    raw: Union[Iterable[RawSample], Dict[SensorId, SampleStore]],
    target_hz: float = DEFAULT_TARGET_HZ,
    strategy: Union[ResampleStrategy, str] = ResampleStrategy.GRID_SNAP,
    session_id: Optional[str] = None,
    chunk_size: int = SAMPLES_PER_CHUNK,
    codec: Codec = pack_joint,
    hold_large_gaps: bool = True,
) -> PipelineResult:
    """Run every stage over a snapshot of raw samples (or prebuilt stores)."""
    strategy = ResampleStrategy.parse(strategy)
    stores = dict(raw) if isinstance(raw, dict) else build_stores(raw)
    for sid in SensorId:
        stores.setdefault(sid, SampleStore(sid))
    missing = missing_sensors(stores)

    if len(missing) == len(SensorId):
        logger.warning("no samples recorded from any sensor")
        return PipelineResult(
            status=PipelineStatus.NO_DATA,
            message="No data to process: no samples were recorded",
            session_id=session_id,
            missing_sensors=missing,
        )
    if missing:
        logger.warning("sensors without samples: %s", _names(missing))

    if not _joints_complete(stores):
        return PipelineResult(
            status=PipelineStatus.ALIGNMENT_FAILED,
            message=(
                "Cannot align joints: no thigh/shin pair has samples. "
                f"Ensure sensors are connected (missing: {_names(missing)})"
            ),
            session_id=session_id,
            missing_sensors=missing,
        )

    if strategy is ResampleStrategy.GRID_SNAP:
        result = resample_grid_snap(stores, target_hz, hold_large_gaps=hold_large_gaps)
    else:
        # a complete thigh/shin pair guarantees a non-empty merged stream
        result = resample_direct(align_and_merge(stores), target_hz)

    if not result.samples:
        return PipelineResult(
            status=PipelineStatus.INTERPOLATION_FAILED,
            message="Interpolation produced no grid points",
            stats=result.stats,
            session_id=session_id,
            missing_sensors=missing,
        )

    chunking: ChunkingResult = chunk_samples(
        result.samples,
        session_id=session_id,
        chunk_size=chunk_size,
        sample_rate=target_hz,
        codec=codec,
    )
    if chunking.total_chunks == 0:
        return PipelineResult(
            status=PipelineStatus.NOTHING_TO_CHUNK,
            message="Nothing to chunk",
            samples=result.samples,
            stats=result.stats,
            session_id=chunking.session_id,
            missing_sensors=missing,
        )

    logger.debug(
        "pipeline %s: %d samples -> %d chunk(s) [%s]",
        chunking.session_id, chunking.total_samples, chunking.total_chunks, strategy.value,
    )
    message = "ok" if not missing else f"ok; missing sensors: {_names(missing)}"
    return PipelineResult(
        status=PipelineStatus.OK,
        message=message,
        samples=result.samples,
        chunks=chunking.chunks,
        stats=result.stats,
        session_id=chunking.session_id,
        missing_sensors=missing,
    )
