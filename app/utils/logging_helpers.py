"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import datetime, timezone


def log_import_summary(logger: logging.Logger, imported: int, skipped: int) -> None:
    """
    Log bulk import outcome.

    Args:
        logger: Logger instance
        imported: Number of entries created
        skipped: Number of lines dropped as unparseable
    """
    logger.info(f"Bulk import summary - Imported: {imported}, Skipped: {skipped}")


def log_report_generated(logger: logging.Logger, window_days: int, total_entries: int) -> None:
    """Log analytics report generation."""
    logger.info(
        f"Analytics report generated at {datetime.now(timezone.utc).isoformat()} "
        f"({window_days} day window, {total_entries} entries)"
    )
