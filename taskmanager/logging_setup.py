from __future__ import annotations

import logging
import sys
from pathlib import Path

_NOISY_LOGGERS = ("apscheduler", "aiosqlite", "aiosmtplib", "sqlalchemy.engine", "httpx")


def setup_logging(level: str | int = logging.INFO, log_file: str = "", echo_sql: bool = False) -> None:
    """
    Configure root logging once per process.

    Console always; a UTF-8 file handler when log_file is set. Chatty
    third-party loggers are held at WARNING (SQL echo re-enables the engine).
    """
    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setFormatter(fmt)
        root.addHandler(fh)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if echo_sql:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    logging.captureWarnings(True)
