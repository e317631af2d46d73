"""Logger configuration for the adaptive engine.

Engine code binds the athlete it works on (`logger.bind(athlete_id=...)`).
Every line shows that athlete, or "-" outside an athlete scope, followed by
any other bound fields such as state_date or error.
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

NO_ATHLETE = "-"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>athlete={extra[athlete_id]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>{extra[context]}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | athlete={extra[athlete_id]} | {name}:{function}:{line} - {message}{extra[context]}"


def format_context(extra: dict[str, Any]) -> str:
    """Render bound fields other than the athlete as ` [key=value ...]`."""
    fields = {key: value for key, value in extra.items() if key not in {"athlete_id", "context"}}
    if not fields:
        return ""
    return " [" + " ".join(f"{key}={value}" for key, value in sorted(fields.items())) + "]"


def _add_context(record: dict[str, Any]) -> None:
    record["extra"]["context"] = format_context(record["extra"])


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> None:
    """Configure loguru logger with console and optional file output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, only console logging.
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "1 month")
        serialize: Write the file sink as JSON lines instead of text
    """
    logger.remove()
    logger.configure(extra={"athlete_id": NO_ATHLETE}, patcher=_add_context)

    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=level,
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=serialize,
            backtrace=True,
            diagnose=False,
        )

    logger.bind(log_file=log_file or "", serialize=serialize).info(f"Logger initialized with level={level}")
