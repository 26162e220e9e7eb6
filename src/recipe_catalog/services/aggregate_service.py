"""
Aggregate Service - keeps cached recipe and category aggregates in sync.

Independent rules, each a pure re-derivation from current detail rows
(never an incremental counter), so running them again is always safe:

- Cost rule: est_cost_cents = recipe_cost(lines). Run whenever a recipe's
  ingredient-line set is replaced, or an ingredient price changes.
- Rating rule: ratings_count = count(ratings), avg_rating = mean(scores)
  rounded half-up to one decimal, or 0.0 / 0 with no ratings. Run after
  every rating create, update, or delete.
- Category count rule: recipes_count = count(recipes in the category). Run
  for the old and new category whenever a recipe is created, deleted or
  moved between categories.

Mutating services call the apply_*_rule() functions with their own
session, inside the same session_scope() as the detail change. Any failure
raises AggregateConsistencyError, which rolls the whole unit of work back.

Session Management Pattern:
- Public functions accept an optional `session` parameter
- If session is provided, join the caller's transaction
- If session is None, open a new session_scope for the operation
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.models import Category, Recipe
from recipe_catalog.services import recipe_repository
from recipe_catalog.services.cost_model import lines_cost
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.exceptions import (
    AggregateConsistencyError,
    DatabaseError,
    RecipeNotFound,
    ServiceError,
)
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.validators import raise_if_errors, validate_positive_integer

logger = get_service_logger(__name__)

ONE_DECIMAL = Decimal("0.1")
NO_RATING = Decimal("0.0")


def average_rating(count: int, total: int) -> Decimal:
    """
    Mean score rounded half-up to one decimal.

    Examples:
        (0, 0) -> 0.0; (2, 9) -> 4.5; (3, 13) -> 4.3
    """
    if count == 0:
        return NO_RATING
    return (Decimal(total) / Decimal(count)).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


# ============================================================================
# Rules (run inside the caller's unit of work)
# ============================================================================


def apply_cost_rule(session: Session, recipe: Recipe) -> int:
    """
    Recompute and store a recipe's cached cost from its current lines.

    Pending detail changes are flushed first so the lines are read back as
    the database now holds them.

    Args:
        session: The unit of work that changed the lines
        recipe: Recipe to update

    Returns:
        New est_cost_cents

    Raises:
        AggregateConsistencyError: If the recompute cannot complete
    """
    session.flush()

    try:
        lines = recipe_repository.find_lines_for_recipes(session, [recipe.id]).get(recipe.id, [])
        cost = lines_cost(lines)
        recipe.est_cost_cents = cost
        session.flush()
    except Exception as e:
        log_operation(
            logger,
            operation="apply_cost_rule",
            outcome="error",
            level=logging.ERROR,
            recipe_id=recipe.id,
            error=str(e),
        )
        raise AggregateConsistencyError(recipe.id, "cost", e)

    log_operation(
        logger,
        operation="apply_cost_rule",
        outcome="success",
        level=logging.DEBUG,
        recipe_id=recipe.id,
        est_cost_cents=cost,
    )
    return cost


def apply_rating_rule(session: Session, recipe: Recipe) -> Decimal:
    """
    Recompute and store a recipe's cached rating count and average.

    Args:
        session: The unit of work that changed the rating rows
        recipe: Recipe to update

    Returns:
        New avg_rating

    Raises:
        AggregateConsistencyError: If the recompute cannot complete
    """
    session.flush()

    try:
        count, total = recipe_repository.rating_stats(session, recipe.id)
        average = average_rating(count, total)
        recipe.ratings_count = count
        recipe.avg_rating = average
        session.flush()
    except Exception as e:
        log_operation(
            logger,
            operation="apply_rating_rule",
            outcome="error",
            level=logging.ERROR,
            recipe_id=recipe.id,
            error=str(e),
        )
        raise AggregateConsistencyError(recipe.id, "rating", e)

    log_operation(
        logger,
        operation="apply_rating_rule",
        outcome="success",
        level=logging.DEBUG,
        recipe_id=recipe.id,
        avg_rating=str(average),
        ratings_count=count,
    )
    return average


def apply_category_count_rule(
    session: Session, category_ids: Iterable[Optional[int]]
) -> Dict[int, int]:
    """
    Recompute and store recipes_count for the given categories.

    None entries (recipes without a category) are ignored, so callers can
    pass a recipe's old and new category_id as they are.

    Args:
        session: The unit of work that created, deleted or moved recipes
        category_ids: Categories whose count may have changed

    Returns:
        Mapping category_id -> new recipes_count

    Raises:
        AggregateConsistencyError: If the recompute cannot complete
    """
    ids = {category_id for category_id in category_ids if category_id is not None}
    if not ids:
        return {}

    session.flush()

    try:
        categories = recipe_repository.get_categories_for_update(session, ids)
        stored = recipe_repository.recipe_counts_for_categories(session, ids)
        for category in categories:
            category.recipes_count = stored.get(category.id, 0)
        session.flush()
    except Exception as e:
        failed_id = min(ids)
        log_operation(
            logger,
            operation="apply_category_count_rule",
            outcome="error",
            level=logging.ERROR,
            category_id=failed_id,
            error=str(e),
        )
        raise AggregateConsistencyError(failed_id, "recipes_count", e, resource="category")

    counts = {category.id: category.recipes_count for category in categories}
    log_operation(
        logger,
        operation="apply_category_count_rule",
        outcome="success",
        level=logging.DEBUG,
        recipes_counts=counts,
    )
    return counts


# ============================================================================
# Explicit re-derivation entry points
# ============================================================================


def _load_locked_recipe(session: Session, recipe_id: int) -> Recipe:
    recipe = recipe_repository.get_recipe_for_update(session, recipe_id)
    if recipe is None:
        raise RecipeNotFound(recipe_id)
    return recipe


def recalculate_cost(recipe_id: int, session: Optional[Session] = None) -> Recipe:
    """
    Re-derive a recipe's cached cost from its ingredient lines.

    Args:
        recipe_id: Recipe ID
        session: Optional database session

    Returns:
        The updated Recipe

    Raises:
        ValidationError: If recipe_id is not a positive integer
        RecipeNotFound: If recipe doesn't exist
        AggregateConsistencyError: If the recompute fails
        DatabaseError: If database operation fails
    """
    is_valid, message = validate_positive_integer(recipe_id)
    raise_if_errors({} if is_valid else {"recipe_id": [message]})

    try:
        with scope_for(session) as sess:
            recipe = _load_locked_recipe(sess, recipe_id)
            apply_cost_rule(sess, recipe)
            log_operation(
                logger,
                operation="recalculate_cost",
                outcome="success",
                recipe_id=recipe_id,
                est_cost_cents=recipe.est_cost_cents,
            )
            return recipe
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to recalculate cost for recipe {recipe_id}", e)


def recalculate_rating(recipe_id: int, session: Optional[Session] = None) -> Recipe:
    """
    Re-derive a recipe's cached rating count and average from its ratings.

    Args:
        recipe_id: Recipe ID
        session: Optional database session

    Returns:
        The updated Recipe

    Raises:
        ValidationError: If recipe_id is not a positive integer
        RecipeNotFound: If recipe doesn't exist
        AggregateConsistencyError: If the recompute fails
        DatabaseError: If database operation fails
    """
    is_valid, message = validate_positive_integer(recipe_id)
    raise_if_errors({} if is_valid else {"recipe_id": [message]})

    try:
        with scope_for(session) as sess:
            recipe = _load_locked_recipe(sess, recipe_id)
            apply_rating_rule(sess, recipe)
            log_operation(
                logger,
                operation="recalculate_rating",
                outcome="success",
                recipe_id=recipe_id,
                avg_rating=str(recipe.avg_rating),
                ratings_count=recipe.ratings_count,
            )
            return recipe
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to recalculate rating for recipe {recipe_id}", e)


def recalculate_costs_for_ingredient(ingredient_id: int, session: Optional[Session] = None) -> int:
    """
    Re-derive the cached cost of every recipe that uses an ingredient.

    Called when the ingredient's unit price changes. Lines for all affected
    recipes are loaded in one batch.

    Args:
        ingredient_id: Ingredient whose price changed
        session: Optional database session

    Returns:
        Number of recipes recomputed

    Raises:
        AggregateConsistencyError: If any recompute fails
        DatabaseError: If database operation fails
    """
    try:
        with scope_for(session) as sess:
            sess.flush()
            recipe_ids = recipe_repository.find_recipe_ids_using_ingredient(sess, ingredient_id)
            if not recipe_ids:
                return 0

            recipes = recipe_repository.get_recipes_for_update(sess, recipe_ids)
            lines_by_recipe = recipe_repository.find_lines_for_recipes(sess, recipe_ids)

            for recipe in recipes:
                try:
                    recipe.est_cost_cents = lines_cost(lines_by_recipe.get(recipe.id, []))
                except Exception as e:
                    raise AggregateConsistencyError(recipe.id, "cost", e)
            sess.flush()

            log_operation(
                logger,
                operation="recalculate_costs_for_ingredient",
                outcome="success",
                ingredient_id=ingredient_id,
                recipe_count=len(recipes),
            )
            return len(recipes)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(
            f"Failed to recalculate costs for ingredient {ingredient_id}", e
        )


def recalculate_all(session: Optional[Session] = None) -> Dict[str, int]:
    """
    Re-derive every cached aggregate from source rows.

    Repair tool: after it completes every recipe satisfies the cost and
    rating invariants and every category's recipes_count matches its
    recipes. Lines, rating statistics and category counts are loaded in
    batches.

    Args:
        session: Optional database session

    Returns:
        Dictionary with counts: recipes, costs_changed, ratings_changed,
        categories, category_counts_changed
    """
    summary = {
        "recipes": 0,
        "costs_changed": 0,
        "ratings_changed": 0,
        "categories": 0,
        "category_counts_changed": 0,
    }

    try:
        with scope_for(session) as sess:
            recipe_ids = [row.id for row in sess.query(Recipe.id).order_by(Recipe.id)]
            recipes = recipe_repository.get_recipes_for_update(sess, recipe_ids)
            lines_by_recipe = recipe_repository.find_lines_for_recipes(sess, recipe_ids)
            stats_by_recipe = recipe_repository.rating_stats_for_recipes(sess, recipe_ids)

            for recipe in recipes:
                try:
                    cost = lines_cost(lines_by_recipe.get(recipe.id, []))
                    count, total = stats_by_recipe.get(recipe.id, (0, 0))
                    average = average_rating(count, total)
                except Exception as e:
                    raise AggregateConsistencyError(recipe.id, "cost and rating", e)

                if recipe.est_cost_cents != cost:
                    summary["costs_changed"] += 1
                    recipe.est_cost_cents = cost
                if recipe.ratings_count != count or Decimal(str(recipe.avg_rating)) != average:
                    summary["ratings_changed"] += 1
                    recipe.ratings_count = count
                    recipe.avg_rating = average

            category_ids = [row.id for row in sess.query(Category.id).order_by(Category.id)]
            categories = recipe_repository.get_categories_for_update(sess, category_ids)
            recipes_by_category = recipe_repository.recipe_counts_for_categories(
                sess, category_ids
            )

            for category in categories:
                recipes_count = recipes_by_category.get(category.id, 0)
                if category.recipes_count != recipes_count:
                    summary["category_counts_changed"] += 1
                    category.recipes_count = recipes_count

            summary["recipes"] = len(recipes)
            summary["categories"] = len(categories)
            sess.flush()

            log_operation(logger, operation="recalculate_all", outcome="success", **summary)
            return summary
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to recalculate catalog aggregates", e)
