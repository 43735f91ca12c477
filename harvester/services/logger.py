"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from harvester.config import settings

_configured = False


def configure_logging(force: bool = False) -> None:
    """Install the console (and optional file) sinks once per process."""
    global _configured
    if _configured and not force:
        return

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.app_log_level.upper(),
        colorize=True,
    )

    if settings.log_to_file:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "harvester_{time:YYYY-MM-DD}.log",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",
            rotation="00:00",
            retention="7 days",
            compression="zip",
        )

    # Reduce noise from network libraries
    for logger_name in ("httpx", "httpcore", "hpack", "asyncio"):
        logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())

    _configured = True


def log_research_phase(phase: str, status: str, **data) -> None:
    """Log a research phase boundary."""
    phase_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "phase": phase,
        "status": status,
        **data,
    }
    if status == "failed":
        logger.error(f"RESEARCH_PHASE_FAILED: {phase_data}")
    else:
        logger.info(f"RESEARCH_PHASE: {phase_data}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {event_data}")
