import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import os
import sys

# --- 1. PATHS ---

# Relative LOG_DIR values resolve against the working directory the server is started from.
# An empty LOG_DIR turns file logging off (console only).
_log_dir_setting = os.getenv("LOG_DIR", "logs").strip()
LOG_DIR = Path(_log_dir_setting) if _log_dir_setting else None
LOG_FILE = LOG_DIR / "attendance.log" if LOG_DIR else None


# --- 2. LOGGER AND LEVEL ---

logger = logging.getLogger("edupresence")
logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

formatter = logging.Formatter(
    "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
)


# --- 3. HANDLERS ---

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if LOG_FILE is not None:
        try:
            LOG_DIR.mkdir(exist_ok=True, parents=True)
            # Rotates at 5MB, keeps three old files
            file_handler = RotatingFileHandler(
                LOG_FILE,
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning("File logging disabled, cannot write to %s: %s", LOG_DIR, e)


def get_logger(name: str) -> logging.Logger:
    """Child logger under the service logger, e.g. get_logger("attendance")."""
    return logger.getChild(name)
