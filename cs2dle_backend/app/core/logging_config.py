from __future__ import annotations

import logging
from datetime import datetime, timezone


class UTCFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        record_time = datetime.fromtimestamp(record.created, timezone.utc)
        return record_time.strftime(datefmt) if datefmt else record_time.isoformat()


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the root logger.

    Safe to call more than once (e.g. one app per test case); later calls
    only adjust the level.
    """
    logger = logging.getLogger()
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            UTCFormatter(
                fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger
