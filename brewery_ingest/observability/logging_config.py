"""
Logging configuration using Loguru for structured, rotating logs.

Features:
- Colored console output for following a multi-hour run
- JSON file sink with rotation (10MB per file, 30 days retention)
- Correlation via context binding (run_id, region)
"""

from loguru import logger
import sys
from pathlib import Path


def setup_logging(
    run_id: str = None,
    region: str = None,
    verbose: bool = False,
    log_dir: str | Path = "data/logs",
):
    """
    Configure Loguru logger with console and file handlers.

    Args:
        run_id: Unique run identifier for correlation
        region: Region being processed ("all" for a full run)
        verbose: If True, set console level to DEBUG
        log_dir: Directory for the rotating JSON log file

    Returns:
        Configured logger with context bindings
    """
    logger.remove()

    console_level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stdout,
        level=console_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        colorize=True,
    )

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_path / "ingest.log",
        level="DEBUG",
        format="{time} {level} {message}",
        rotation="10 MB",
        retention="30 days",
        serialize=True,
        enqueue=True,
    )

    return logger.bind(
        run_id=run_id or "unknown",
        region=region or "unknown",
    )
