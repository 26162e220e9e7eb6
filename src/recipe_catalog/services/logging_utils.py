"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across catalog mutations and searches.

Usage:
    from recipe_catalog.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="recalculate_cost",
        outcome="success",
        recipe_id=45,
        est_cost_cents=1300,
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "recipe_catalog.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named 'recipe_catalog.services.<module>'.

    Example:
        >>> get_service_logger("recipe_catalog.services.rating_service").name
        'recipe_catalog.services.rating_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The message is "<operation>: <outcome>"; the operation, outcome and any
    context fields are passed via 'extra' for structured handlers.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "rate_recipe", "search_by_budget")
        outcome: Outcome description (e.g., "success", "created", "error")
        level: Log level (default: INFO). Use DEBUG for frequent read paths.
        **context: Additional context fields (entity IDs, counts, error details)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
