"""Runtime config for report modules (simple dependency injection)."""

from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import logging

WRITE_RECORD: Optional[Callable[..., None]] = None
LOGGER: Optional[logging.Logger] = None


def setup(
    *,
    write_record: Callable[..., None],
    logger: Optional[logging.Logger] = None,
) -> None:
    """Provide shared dependencies to all report modules."""
    # pylint: disable=global-statement
    global WRITE_RECORD, LOGGER
    WRITE_RECORD = write_record
    LOGGER = logger or logging.getLogger("aws_reports")


def require_setup() -> None:
    """Raise if :func:`setup` has not been called."""
    if WRITE_RECORD is None:
        raise RuntimeError(
            "Reports not configured. Call "
            "aws_reports.config.setup(write_record=..., logger=...) first."
        )


def emit(writer: Any, record: Dict[str, Any]) -> None:
    """Hand one record to the configured writer function."""
    require_setup()
    WRITE_RECORD(writer=writer, record=record)  # type: ignore[misc]
