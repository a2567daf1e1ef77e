from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root))

from jointsync.config.settings import settings  # noqa: E402
from jointsync.pipeline.angles import to_angle_frame  # noqa: E402
from jointsync.pipeline.io_utils import read_raw_csv_bytes  # noqa: E402
from jointsync.pipeline.pipeline import run_pipeline  # noqa: E402


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Align and resample a CSV dump of raw knee sensor samples.")
    ap.add_argument("csv", type=Path, help="raw sample CSV (sensor, timestamp, quat_w..quat_z)")
    ap.add_argument("--target-hz", type=float, default=settings.target_hz)
    ap.add_argument("--strategy", default=settings.resample_strategy, choices=["grid_snap", "direct"])
    ap.add_argument("--chunk-size", type=int, default=settings.chunk_size)
    ap.add_argument("--no-hold-large-gaps", dest="hold_large_gaps", action="store_false",
                    help="SLERP across large gaps instead of holding the last sample")
    ap.add_argument("--angles", type=Path, default=None, help="also write a knee angle table to this CSV path")
    ap.add_argument("--axis", default="y", choices=["x", "y", "z"])
    args = ap.parse_args(argv)

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    raw = read_raw_csv_bytes(args.csv.read_bytes())
    res = run_pipeline(
        raw,
        target_hz=args.target_hz,
        strategy=args.strategy,
        chunk_size=args.chunk_size,
        hold_large_gaps=args.hold_large_gaps,
    )
    print(json.dumps(res.summary(), indent=2))
    if res.ok and args.angles is not None:
        to_angle_frame(res.samples, axis=args.axis).to_csv(args.angles, index=False)
    return 0 if res.ok else 1


if __name__ == "__main__":
    sys.exit(main())
