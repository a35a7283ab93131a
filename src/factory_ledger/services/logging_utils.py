"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across submission, confirmation and
ledger operations.

Usage:
    from factory_ledger.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="confirm_batch",
        outcome="success",
        batch_id=123,
        entry_count=4,
    )
"""

import logging
from typing import Any


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance with the 'factory_ledger.services' prefix.

    Example:
        >>> logger = get_service_logger(__name__)
        >>> logger.name
        'factory_ledger.services.reconciliation_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"factory_ledger.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured logging,
    so handlers can read e.g. ``record.batch_id``.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "confirm_batch", "reject_batch")
        outcome: Outcome description (e.g., "success", "guard_violation")
        level: Log level (default: INFO)
        **context: Additional context fields (entity IDs, error details, etc.)
            Common fields:
            - batch_id: Production batch being processed
            - actor: Actor performing the operation
            - entry_count: Number of ledger entries written
            - error: Error message if outcome is an error
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
