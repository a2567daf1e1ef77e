"""Run the joint alignment API (``app:app``) under uvicorn.

HOST, PORT and WORKERS come from the environment; the log level follows the
same LOG_LEVEL setting the app uses for its own loggers.
"""
from __future__ import annotations
import os
import sys
from pathlib import Path
import uvicorn

# project root holds app.py and the jointsync package
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from jointsync.config.settings import settings  # noqa: E402


def server_options() -> dict:
    try:
        workers = int(os.getenv("WORKERS", "1"))
    except ValueError:
        workers = 1
    return {
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": int(os.getenv("PORT", "8000")),
        # uploads are processed in-request; each worker holds its own app
        "workers": max(1, workers),
        "log_level": settings.log_level.lower(),
        "reload": False,
        "proxy_headers": True,
        "forwarded_allow_ips": "*",
    }


def main():
    uvicorn.run("app:app", **server_options())


if __name__ == "__main__":
    main()
