"""
Budget Match Service - recipes that fit a budget at a given serving count.

A recipe's cached cost covers its own serving count; it is rescaled to the
requested servings with exact Decimal arithmetic and rounded half-up to whole
minor units. Recipes with zero servings have no per-serving cost and are
skipped.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.models import Recipe
from recipe_catalog.services import recipe_repository
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.dto import (
    BudgetMatch,
    PageResult,
    ScopeCriteria,
    paginate_sequence,
)
from recipe_catalog.services.exceptions import DatabaseError, ServiceError
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.constants import DEFAULT_SERVINGS
from recipe_catalog.utils.validators import (
    raise_if_errors,
    validate_budget_request,
    validate_scope_criteria,
)

logger = get_service_logger(__name__)

ONE_DECIMAL = Decimal("0.1")


def scaled_cost(est_cost_cents: int, recipe_servings: int, requested_servings: int) -> int:
    """
    Rescale a recipe's cost to the requested serving count.

    Examples:
        (2000, 4, 2) -> 1000; (1000, 3, 2) -> 667; (5, 2, 1) -> 3
    """
    exact = Decimal(est_cost_cents) * requested_servings / Decimal(recipe_servings)
    return int(exact.to_integral_value(rounding=ROUND_HALF_UP))


def budget_usage_percentage(actual_cost: int, budget_cents: int) -> Decimal:
    """actual_cost as a percentage of the budget, one decimal."""
    percentage = Decimal(actual_cost) * 100 / Decimal(budget_cents)
    return percentage.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def search_by_budget(
    budget_cents: int,
    servings: Optional[int] = None,
    criteria: Optional[ScopeCriteria] = None,
    session: Optional[Session] = None,
) -> PageResult[BudgetMatch]:
    """
    Find recipes whose cost at the requested servings fits the budget.

    Args:
        budget_cents: Budget in minor currency units (> 0)
        servings: Requested servings (>= 1, default 4)
        criteria: Catalog scope and pagination (sorting is fixed)
        session: Optional database session

    Returns:
        PageResult of BudgetMatch ordered by actual_cost ascending, then
        recipe id ascending

    Raises:
        ValidationError: If budget or servings is not positive, or the scope
            criteria are invalid
        DatabaseError: If database operation fails

    Example:
        Recipe cost 2000 for 4 servings, 2 servings requested, budget 1200
        -> actual_cost 1000, remaining_budget 200, usage 83.3
    """
    criteria = criteria or ScopeCriteria()
    servings = DEFAULT_SERVINGS if servings is None else servings

    errors = validate_scope_criteria(criteria)
    errors.update(validate_budget_request(budget_cents, servings))
    raise_if_errors(errors)

    pagination = criteria.pagination()

    try:
        with scope_for(session) as sess:
            candidates = recipe_repository.find_recipes(
                sess, criteria, extra_filters=(Recipe.servings > 0,)
            )

            matches: List[BudgetMatch] = []
            for recipe in candidates:
                actual_cost = scaled_cost(recipe.est_cost_cents, recipe.servings, servings)
                if actual_cost > budget_cents:
                    continue

                matches.append(
                    BudgetMatch(
                        recipe=recipe,
                        actual_cost=actual_cost,
                        remaining_budget=max(budget_cents - actual_cost, 0),
                        budget_usage_percentage=budget_usage_percentage(actual_cost, budget_cents),
                    )
                )

            matches.sort(key=lambda match: (match.actual_cost, match.recipe.id))

            log_operation(
                logger,
                operation="search_by_budget",
                outcome="success",
                level=logging.DEBUG,
                budget_cents=budget_cents,
                servings=servings,
                candidate_count=len(candidates),
                total_count=len(matches),
            )
            return paginate_sequence(matches, pagination)

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to search recipes by budget", e)
