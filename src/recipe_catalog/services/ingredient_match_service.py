"""
Ingredient Match Service - "what can I make with what I have".

For each recipe in the catalog scope, the required set is the ingredient ids
of its lines (non-optional lines only, unless include_optional is set). The
match percentage is the share of the required set found in the supplied ids,
rounded half-up to one decimal. Recipes with an empty required set never
match.

Query plan (fixed number of queries, independent of candidate count):
1. Scoped candidates via recipe_repository.find_recipes()
2. Lines for all candidates in one batch
3. Missing ingredients for all surviving recipes in one batch
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.services import recipe_repository
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.dto import (
    IngredientMatch,
    PageResult,
    ScopeCriteria,
    paginate_sequence,
)
from recipe_catalog.services.exceptions import DatabaseError, ServiceError
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.constants import DEFAULT_MATCH_PERCENTAGE
from recipe_catalog.utils.validators import (
    raise_if_errors,
    validate_ingredient_match_request,
    validate_scope_criteria,
)

logger = get_service_logger(__name__)

ONE_DECIMAL = Decimal("0.1")


def match_percentage_for(matched_count: int, total_count: int) -> Decimal:
    """
    Share of the required set that was supplied, as a percentage.

    Examples:
        (2, 2) -> 100.0; (1, 2) -> 50.0; (2, 3) -> 66.7
    """
    percentage = Decimal(matched_count) * 100 / Decimal(total_count)
    return percentage.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def search_by_ingredients(
    ingredient_ids: Iterable[int],
    match_percentage: Optional[int] = None,
    include_optional: bool = False,
    criteria: Optional[ScopeCriteria] = None,
    session: Optional[Session] = None,
) -> PageResult[IngredientMatch]:
    """
    Find recipes whose required ingredients are mostly covered.

    Args:
        ingredient_ids: Non-empty collection of ingredient ids on hand
        match_percentage: Minimum match percentage, 1-100 (default 80)
        include_optional: Count optional lines in the required set
        criteria: Catalog scope and pagination (sorting is fixed)
        session: Optional database session

    Returns:
        PageResult of IngredientMatch ordered by match percentage
        descending, then recipe id ascending

    Raises:
        ValidationError: If ingredient_ids is empty, the threshold is out of
            range, or the scope criteria are invalid
        DatabaseError: If database operation fails
    """
    criteria = criteria or ScopeCriteria()
    threshold = DEFAULT_MATCH_PERCENTAGE if match_percentage is None else match_percentage
    if ingredient_ids is not None and not isinstance(ingredient_ids, (str, bytes)):
        ingredient_ids = list(ingredient_ids)

    errors = validate_scope_criteria(criteria)
    errors.update(validate_ingredient_match_request(ingredient_ids, threshold, include_optional))
    raise_if_errors(errors)

    supplied: Set[int] = set(ingredient_ids)
    pagination = criteria.pagination()

    try:
        with scope_for(session) as sess:
            candidates = recipe_repository.find_recipes(sess, criteria)
            lines_by_recipe = recipe_repository.find_lines_for_recipes(
                sess, [recipe.id for recipe in candidates], include_optional=include_optional
            )

            survivors = []
            for recipe in candidates:
                required = {line.ingredient_id for line in lines_by_recipe.get(recipe.id, [])}
                if not required:
                    continue

                matched_count = len(required & supplied)
                percentage = match_percentage_for(matched_count, len(required))
                if percentage < threshold:
                    continue

                survivors.append((recipe, percentage, matched_count, required))

            survivors.sort(key=lambda entry: (-entry[1], entry[0].id))

            missing_ids = set()
            for _, _, _, required in survivors:
                missing_ids |= required - supplied
            ingredients_by_id = {
                ingredient.id: ingredient
                for ingredient in recipe_repository.find_ingredients_by_ids(sess, missing_ids)
            }

            matches: List[IngredientMatch] = []
            for recipe, percentage, matched_count, required in survivors:
                missing = [
                    ingredients_by_id[ingredient_id]
                    for ingredient_id in sorted(required - supplied)
                    if ingredient_id in ingredients_by_id
                ]
                matches.append(
                    IngredientMatch(
                        recipe=recipe,
                        match_percentage=percentage,
                        matched_count=matched_count,
                        total_count=len(required),
                        missing_ingredients=missing,
                    )
                )

            log_operation(
                logger,
                operation="search_by_ingredients",
                outcome="success",
                level=logging.DEBUG,
                supplied_count=len(supplied),
                threshold=threshold,
                candidate_count=len(candidates),
                total_count=len(matches),
            )
            return paginate_sequence(matches, pagination)

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to search recipes by ingredients", e)
