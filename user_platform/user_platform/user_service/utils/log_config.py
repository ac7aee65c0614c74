"""
Logging setup for the user service.
"""
import sys
import logging
import os

from ..config import settings


def configure_logging(log_dir: str = None, level: str = None) -> None:
    """
    Send service logs to stdout and, when possible, to LOG_DIR/user_service.log.

    The file handler is skipped (with a warning on stderr) if the directory
    can't be created.
    """
    log_dir = log_dir or settings.LOG_DIR
    level = level or settings.LOG_LEVEL

    # Create handlers list
    handlers = [logging.StreamHandler(sys.stdout)]

    # Try to add file handler, but continue without it if directory creation fails
    try:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, "user_service.log")))
    except OSError as e:
        print(f"WARNING: Could not set up file logging: {e}", file=sys.stderr)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )
