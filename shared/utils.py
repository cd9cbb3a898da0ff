import logging
from datetime import UTC, datetime
from pathlib import Path

from shared.config import ServiceConfig, config

__all__ = [
    "ServiceConfig",
    "config",
    "ensure_directory",
    "normalize_email",
    "sanitize_filename",
    "setup_logging",
    "utc_now",
]


def setup_logging(service_name: str, log_level: str = "INFO") -> logging.Logger:
    """Setup logging configuration for a service"""
    logger = logging.getLogger(service_name)
    logger.setLevel(getattr(logging, log_level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(f"%(asctime)s - {service_name} - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage"""
    invalid_chars = '<>:"/\\|?*'
    for char in invalid_chars:
        filename = filename.replace(char, "_")
    return filename


def ensure_directory(path: str) -> None:
    """Ensure directory exists, create if not"""
    Path(path).mkdir(parents=True, exist_ok=True)


def normalize_email(email: str | None) -> str:
    """Lower-case and trim an e-mail address for comparisons"""
    return (email or "").strip().lower()


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(UTC)
