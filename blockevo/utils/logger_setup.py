"""Loguru sinks for blockevo runs."""

from datetime import datetime, timezone
from pathlib import Path
import sys

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{line} | {message}"


def setup_logger(
    log_dir: str = "logs",
    level: str = "INFO",
    rotation: str = "50 MB",
    retention: str = "30 days",
) -> Path:
    """Replace loguru's default sink with stdout plus a rotating file in ``log_dir``.

    Returns the path of the run's log file, ``blockevo_<UTC timestamp>.log``.
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_file = directory / f"blockevo_{timestamp}.log"

    logger.remove()
    # colorize=None lets loguru colour only when stdout is a terminal
    logger.add(sys.stdout, level=level, format=LOG_FORMAT, colorize=None)
    logger.add(
        log_file,
        level=level,
        format=LOG_FORMAT,
        rotation=rotation,
        retention=retention,
        compression="zip",
        encoding="utf-8",
    )
    return log_file
