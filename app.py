from __future__ import annotations
import logging
from typing import Any, Optional

import numpy as np
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from jointsync.config.settings import settings
from jointsync.pipeline.io_utils import read_raw_csv_bytes
from jointsync.pipeline.pipeline import run_pipeline
from jointsync.pipeline.resampler import ResampleStrategy
from jointsync.pipeline.types import PipelineError

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("jointsync.app")

app = FastAPI(
    title=settings.app_name,
    docs_url=("/docs" if settings.docs_enabled else None),
    redoc_url=("/redoc" if settings.docs_enabled else None),
    openapi_url=("/openapi.json" if settings.openapi_enabled else None),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_origins),
    allow_credentials=settings.allow_credentials,
    allow_methods=list(settings.allowed_methods),
    allow_headers=list(settings.allowed_headers),
)

# Compression for large JSON responses
app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_min_size)


def to_json_safe(obj: Any):
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.generic,)):
        return obj.item()
    if isinstance(obj, dict):
        return {k: to_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_safe(x) for x in obj]
    return obj


def _chunk_meta(c) -> dict:
    return {
        "session_id": c.session_id,
        "chunk_index": c.chunk_index,
        "total_chunks": c.total_chunks,
        "start_time": c.start_time,
        "end_time": c.end_time,
        "sample_count": c.sample_count,
        "sample_rate": c.sample_rate,
        "active_joints": list(c.active_joints),
        "left_flags": c.left_flags,
        "right_flags": c.right_flags,
    }


@app.post("/api/process/")
async def process_recording(
    file: UploadFile = File(...),
    target_hz: Optional[float] = Form(None),
    strategy: Optional[str] = Form(None),
    chunk_size: Optional[int] = Form(None),
    session_id: Optional[str] = Form(None),
):
    """Align and resample an uploaded CSV dump of raw sensor samples."""
    content = await file.read()
    if len(content) > int(settings.max_upload_mb) * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"Upload exceeds limit of {settings.max_upload_mb} MB")

    try:
        strat = ResampleStrategy.parse(strategy or settings.resample_strategy)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        raw = read_raw_csv_bytes(content)
    except (ValueError, KeyError) as e:
        raise HTTPException(status_code=400, detail=f"Could not parse CSV: {e}")

    try:
        result = run_pipeline(
            raw,
            target_hz=target_hz or settings.target_hz,
            strategy=strat,
            session_id=session_id,
            chunk_size=chunk_size or settings.chunk_size,
        )
    except PipelineError as e:
        logger.exception("pipeline aborted")
        raise HTTPException(status_code=500, detail=str(e))

    body = result.summary()
    if not result.ok:
        return JSONResponse(status_code=422, content=to_json_safe(body))
    body["strategy"] = strat.value
    body["chunks"] = [_chunk_meta(c) for c in result.chunks]
    return JSONResponse(to_json_safe(body))


# Simple health check endpoint
@app.get("/health")
async def health():
    return JSONResponse({"status": "ok"})
