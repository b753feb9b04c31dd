from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FILE_NAME = "notion_gcal_sync.log"

# Libraries that log every request at INFO.
NOISY_LOGGERS = (
    "googleapiclient",
    "googleapiclient.discovery_cache",
    "google_auth_oauthlib",
    "urllib3",
    "httpx",
    "notion_client",
)


def setup_logging(level: str | int = logging.INFO, log_dir: Optional[str | Path] = None) -> None:
    """
    Configure root logging for a sync run:
    - console handler on stderr at ``level``
    - file handler with everything, when ``log_dir`` is given

    Call once, before the first log line.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(log_dir / LOG_FILE_NAME), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
