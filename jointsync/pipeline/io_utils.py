from __future__ import annotations
import csv
import io
import logging
import re
from typing import List

import numpy as np
import pandas as pd

from ..config.constants import QW, QX, QY, QZ, SENSOR_CANDS, TIME_CANDS
from .types import RawSample, SensorId

__all__ = [
    "sanitize_cols",
    "pick_col",
    "read_csv_bytes",
    "raw_samples_from_frame",
    "read_raw_csv_bytes",
]

logger = logging.getLogger(__name__)

_DELIMS = [",", ";", "\t", "|"]


def sanitize_cols(cols):
    sc = []
    for c in cols:
        s = str(c).strip()
        s = re.sub(r"[^0-9A-Za-z]+", "_", s)
        s = re.sub(r"_+", "_", s)
        sc.append(s.strip("_").lower())
    return sc


def pick_col(df: pd.DataFrame, candidates: list[str]) -> str:
    for c in candidates:
        if c in df.columns:
            return c
    base = ["".join(filter(str.isalpha, c)) for c in df.columns]
    for c in candidates:
        token = "".join(filter(str.isalpha, c))
        # single letters would match almost any column
        if len(token) < 2:
            continue
        for bidx, b in enumerate(base):
            if token in b:
                return df.columns[bidx]
    raise KeyError(f"Missing any of {candidates}")


def read_csv_bytes(b: bytes) -> pd.DataFrame:
    """Parse a delimited text payload into a frame with sanitized column names."""
    text = b.decode("utf-8", errors="ignore")
    rows = [r for r in text.splitlines() if r.strip()]
    if not rows:
        raise ValueError("Empty CSV payload")
    payload = "\n".join(rows)

    df = None
    try:
        df = pd.read_csv(io.StringIO(payload), engine="python", sep=None, on_bad_lines="skip")
    except (pd.errors.ParserError, csv.Error):
        df = None
    if df is None or df.shape[1] < 2:
        delim = max(_DELIMS, key=lambda d: rows[0].count(d))
        df = pd.read_csv(io.StringIO(payload), engine="python", sep=delim, on_bad_lines="skip")

    df.columns = sanitize_cols(df.columns)
    return df


def _parse_sensor(value):
    if isinstance(value, float) and np.isfinite(value) and value.is_integer():
        value = int(value)
    try:
        return SensorId.parse(value)
    except ValueError:
        return None


def raw_samples_from_frame(df: pd.DataFrame) -> List[RawSample]:
    """Turn a raw-sample frame into ``RawSample``s.

    Rows with an unknown sensor id or a non-finite timestamp or quaternion
    component are dropped.
    """
    s_col = pick_col(df, SENSOR_CANDS)
    t_col = pick_col(df, TIME_CANDS)
    q_cols = [pick_col(df, QW), pick_col(df, QX), pick_col(df, QY), pick_col(df, QZ)]

    t = pd.to_numeric(df[t_col], errors="coerce").to_numpy(dtype=float)
    Q = np.stack([pd.to_numeric(df[c], errors="coerce").to_numpy(dtype=float) for c in q_cols], axis=1)
    sensors = [_parse_sensor(v) for v in df[s_col].tolist()]

    out: List[RawSample] = []
    unknown = bad = 0
    for i, sid in enumerate(sensors):
        if sid is None:
            unknown += 1
            continue
        if not (np.isfinite(t[i]) and np.all(np.isfinite(Q[i]))):
            bad += 1
            continue
        out.append(RawSample(sensor_id=sid, timestamp_ms=float(t[i]), quaternion=Q[i].copy()))
    if unknown or bad:
        logger.warning(
            "dropped %d row(s) with unknown sensor id and %d row(s) with non-finite values",
            unknown, bad,
        )
    return out


def read_raw_csv_bytes(b: bytes) -> List[RawSample]:
    return raw_samples_from_frame(read_csv_bytes(b))
