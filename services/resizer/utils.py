"""
Utility functions for the image resizer.
"""
import logging
import sys
from datetime import datetime, timezone


def setup_logging(name: str = "resizer") -> logging.Logger:
    """Configure and return a logger with consistent formatting."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.INFO)
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_ms(start_time: datetime) -> float:
    """Calculate elapsed milliseconds since start_time."""
    return (utc_now() - start_time).total_seconds() * 1000
