"""
Recipe Service - Business logic for recipe management.

This service provides CRUD operations for recipes with:
- Input validation (before any data access)
- Full replacement of a recipe's ingredient-line set
- Cost aggregate maintenance in the same unit of work as every line change
- Category recipes_count maintenance on create, delete and category moves

Recipes are created with zero cached values; create_recipe() and
update_recipe() then run the cost rule from aggregate_service before the
unit of work commits.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.models import Category, Difficulty, Recipe, RecipeIngredient
from recipe_catalog.services import aggregate_service, recipe_repository
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.exceptions import (
    CategoryNotFound,
    DatabaseError,
    IngredientNotFound,
    RecipeNotFound,
    ServiceError,
)
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.constants import DEFAULT_DIFFICULTY, DEFAULT_SERVINGS
from recipe_catalog.utils.validators import (
    raise_if_errors,
    to_decimal,
    validate_ingredient_lines,
    validate_recipe_data,
)

logger = get_service_logger(__name__)


# ============================================================================
# Helpers
# ============================================================================


def _get_category(session: Session, category_id: Optional[int]) -> Optional[Category]:
    if category_id is None:
        return None
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFound(category_id)
    return category


def _replace_lines(
    session: Session, recipe: Recipe, ingredients_data: List[Dict[str, Any]]
) -> None:
    """
    Replace a recipe's whole ingredient-line set.

    Ingredients are verified with one batched lookup. Old lines are deleted
    and flushed before new ones are inserted so a re-added ingredient does
    not collide with the (recipe, ingredient) unique constraint.

    Raises:
        IngredientNotFound: For the first ingredient_id that doesn't exist
    """
    ingredient_ids = [line["ingredient_id"] for line in ingredients_data]
    found = {
        ingredient.id: ingredient
        for ingredient in recipe_repository.find_ingredients_by_ids(session, ingredient_ids)
    }
    for ingredient_id in ingredient_ids:
        if ingredient_id not in found:
            raise IngredientNotFound(ingredient_id)

    recipe.recipe_ingredients.clear()
    session.flush()

    for line in ingredients_data:
        recipe.recipe_ingredients.append(
            RecipeIngredient(
                ingredient=found[line["ingredient_id"]],
                quantity=to_decimal(line["quantity"]),
                unit=line["unit"].strip(),
                optional=line.get("optional", False),
                notes=line.get("notes"),
            )
        )


def _validate(recipe_data: Dict, ingredients_data: Optional[List[Dict]], partial: bool) -> None:
    errors = validate_recipe_data(recipe_data, partial=partial)
    if ingredients_data is not None:
        errors.update(validate_ingredient_lines(ingredients_data))
    raise_if_errors(errors)


# ============================================================================
# CRUD Operations
# ============================================================================


def create_recipe(
    recipe_data: Dict,
    ingredients_data: Optional[List[Dict]] = None,
    session: Optional[Session] = None,
) -> Recipe:
    """
    Create a new recipe with optional ingredient lines.

    Args:
        recipe_data: Dictionary with recipe fields (title, instructions,
            prep_time_min required; description, cook_time_min, servings,
            difficulty, category_id optional)
        ingredients_data: List of ingredient line dicts with:
            - ingredient_id: int
            - quantity: number > 0
            - unit: str
            - optional: bool (default False)
            - notes: str (optional)
        session: Optional database session

    Returns:
        Created Recipe with lines and est_cost_cents set

    Raises:
        ValidationError: If data validation fails
        CategoryNotFound: If category_id doesn't exist
        IngredientNotFound: If an ingredient_id doesn't exist
        AggregateConsistencyError: If the cost recompute fails
        DatabaseError: If database operation fails
    """
    _validate(recipe_data, ingredients_data, partial=False)

    try:
        with scope_for(session) as sess:
            category = _get_category(sess, recipe_data.get("category_id"))

            recipe = Recipe(
                title=recipe_data["title"].strip(),
                description=recipe_data.get("description"),
                instructions=recipe_data["instructions"],
                prep_time_min=recipe_data["prep_time_min"],
                cook_time_min=recipe_data.get("cook_time_min", 0),
                servings=recipe_data.get("servings", DEFAULT_SERVINGS),
                difficulty=Difficulty(recipe_data.get("difficulty") or DEFAULT_DIFFICULTY),
                category=category,
                est_cost_cents=0,
                avg_rating=aggregate_service.NO_RATING,
                ratings_count=0,
            )
            sess.add(recipe)
            sess.flush()

            if ingredients_data:
                _replace_lines(sess, recipe, ingredients_data)

            aggregate_service.apply_cost_rule(sess, recipe)
            aggregate_service.apply_category_count_rule(sess, [recipe.category_id])
            sess.refresh(recipe)

            log_operation(
                logger,
                operation="create_recipe",
                outcome="success",
                recipe_id=recipe.id,
                line_count=len(recipe.recipe_ingredients),
                est_cost_cents=recipe.est_cost_cents,
            )
            return recipe

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create recipe", e)


def get_recipe(recipe_id: int, session: Optional[Session] = None) -> Recipe:
    """
    Retrieve a recipe by ID.

    Args:
        recipe_id: Recipe ID
        session: Optional database session

    Returns:
        Recipe with category and ingredient lines loaded

    Raises:
        RecipeNotFound: If recipe doesn't exist
        AggregateConsistencyError: If the category count recompute fails
        DatabaseError: If database operation fails
    """
    try:
        with scope_for(session) as sess:
            recipe = sess.get(Recipe, recipe_id)
            if recipe is None:
                raise RecipeNotFound(recipe_id)
            return recipe

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to retrieve recipe {recipe_id}", e)


def update_recipe(
    recipe_id: int,
    recipe_data: Dict,
    ingredients_data: Optional[List[Dict]] = None,
    session: Optional[Session] = None,
) -> Recipe:
    """
    Update a recipe and optionally replace its ingredient lines.

    Args:
        recipe_id: Recipe ID
        recipe_data: Dictionary with the recipe fields to change
        ingredients_data: If provided, replaces all recipe ingredient lines
            (an empty list removes every line)
        session: Optional database session

    Returns:
        Updated Recipe with est_cost_cents re-derived

    Raises:
        RecipeNotFound: If recipe doesn't exist
        ValidationError: If data validation fails
        CategoryNotFound: If a new category_id doesn't exist
        IngredientNotFound: If an ingredient_id doesn't exist
        AggregateConsistencyError: If the cost recompute fails
        DatabaseError: If database operation fails
    """
    _validate(recipe_data, ingredients_data, partial=True)

    try:
        with scope_for(session) as sess:
            recipe = recipe_repository.get_recipe_for_update(sess, recipe_id)
            if recipe is None:
                raise RecipeNotFound(recipe_id)

            old_category_id = recipe.category_id

            for field, value in recipe_data.items():
                if field == "category_id":
                    recipe.category = _get_category(sess, value)
                elif field == "difficulty":
                    recipe.difficulty = Difficulty(value or DEFAULT_DIFFICULTY)
                elif field == "title":
                    recipe.title = value.strip()
                else:
                    setattr(recipe, field, value)

            if ingredients_data is not None:
                _replace_lines(sess, recipe, ingredients_data)

            aggregate_service.apply_cost_rule(sess, recipe)
            if recipe.category_id != old_category_id:
                aggregate_service.apply_category_count_rule(
                    sess, [old_category_id, recipe.category_id]
                )
            sess.refresh(recipe)

            log_operation(
                logger,
                operation="update_recipe",
                outcome="success",
                recipe_id=recipe.id,
                lines_replaced=ingredients_data is not None,
                est_cost_cents=recipe.est_cost_cents,
            )
            return recipe

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update recipe {recipe_id}", e)


def delete_recipe(recipe_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete a recipe together with its ingredient lines and ratings.

    The recipe's category has its recipes_count re-derived in the same unit
    of work.

    Args:
        recipe_id: Recipe ID
        session: Optional database session

    Returns:
        True if deleted successfully

    Raises:
        RecipeNotFound: If recipe doesn't exist
        AggregateConsistencyError: If the category count recompute fails
        DatabaseError: If database operation fails
    """
    try:
        with scope_for(session) as sess:
            recipe = sess.get(Recipe, recipe_id)
            if recipe is None:
                raise RecipeNotFound(recipe_id)

            category_id = recipe.category_id

            # Cascade removes recipe_ingredients and ratings
            sess.delete(recipe)
            sess.flush()
            aggregate_service.apply_category_count_rule(sess, [category_id])

            log_operation(logger, operation="delete_recipe", outcome="success", recipe_id=recipe_id)
            return True

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete recipe {recipe_id}", e)


def get_recipe_count(session: Optional[Session] = None) -> int:
    """Return the total number of recipes."""
    with scope_for(session) as sess:
        return sess.query(Recipe).count()
