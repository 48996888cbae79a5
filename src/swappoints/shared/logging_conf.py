"""
Logging Configuration - Handlers for the Exchange Service

Every order transition, balance mutation and store degradation is logged, so
the log doubles as the operator's audit trail. Output goes to stdout, to a
size-rotated file, or both.

Files that USE this module:
- swappoints.app (setup_logging at startup)

Files that this module USES:
- None (pure configuration module)
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "swappoints.log"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "passlib")


def _resolve_log_path(log_file: Optional[Union[str, Path]], log_dir: Optional[Union[str, Path]]) -> Optional[Path]:
    if log_dir:
        return Path(log_dir) / LOG_FILE_NAME
    if log_file:
        return Path(log_file)
    return None


def _build_handlers(
    stdout: bool,
    log_path: Optional[Path],
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers: List[logging.Handler] = []

    if stdout:
        handlers.append(logging.StreamHandler(sys.stdout))

    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ))

    # Never run silent
    if not handlers:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    stdout: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level, as a number or a name such as "DEBUG"
        log_file: Path of the log file (ignored when log_dir is given)
        log_dir: Directory that receives swappoints.log
        stdout: Also log to stdout (turn off under supervisors that capture it)
        max_bytes: Size at which the log file is rotated
        backup_count: Number of rotated files to keep
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    log_path = _resolve_log_path(log_file, log_dir)
    logging.basicConfig(
        level=level,
        handlers=_build_handlers(stdout, log_path, max_bytes, backup_count),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, stdout=%s, file=%s",
        logging.getLevelName(level), stdout, log_path or "-",
    )
