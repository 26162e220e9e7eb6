"""
Ingredient Service - ingredient catalog management.

Provides CRUD and search for ingredients. The unit price is the only
ingredient field the cost model reads, so update_ingredient() re-derives the
cached cost of every recipe using the ingredient whenever the price changes,
inside the same unit of work as the price change.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.models import Ingredient, RecipeIngredient
from recipe_catalog.services import aggregate_service
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.dto import PageResult, PaginationParams
from recipe_catalog.services.exceptions import (
    DatabaseError,
    IngredientInUse,
    IngredientNotFound,
    ServiceError,
    ValidationError,
)
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.constants import (
    DEFAULT_INGREDIENT_UNIT,
    DEFAULT_PAGE,
    DEFAULT_PER_PAGE,
)
from recipe_catalog.utils.validators import (
    raise_if_errors,
    validate_ingredient_data,
    validate_ingredient_search,
)

logger = get_service_logger(__name__)

INGREDIENT_SORT_COLUMNS = {
    "name": Ingredient.name,
    "unit_price_cents": Ingredient.unit_price_cents,
    "created": Ingredient.created_at,
}


def _check_unique_name(session: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = session.query(Ingredient).filter(func.lower(Ingredient.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Ingredient.id != exclude_id)
    if query.first() is not None:
        raise ValidationError({"name": [f"'{name}' is already taken"]})


def create_ingredient(ingredient_data: Dict, session: Optional[Session] = None) -> Ingredient:
    """
    Create a new ingredient.

    Args:
        ingredient_data: Dictionary with name (required), name_uk,
            default_unit, category and unit_price_cents (optional)
        session: Optional database session

    Returns:
        Created Ingredient

    Raises:
        ValidationError: If data is invalid or the name is taken
        DatabaseError: If database operation fails
    """
    raise_if_errors(validate_ingredient_data(ingredient_data))
    name = ingredient_data["name"].strip()

    try:
        with scope_for(session) as sess:
            _check_unique_name(sess, name)

            ingredient = Ingredient(
                name=name,
                name_uk=(ingredient_data.get("name_uk") or "").strip() or None,
                default_unit=ingredient_data.get("default_unit") or DEFAULT_INGREDIENT_UNIT,
                category=ingredient_data.get("category"),
                unit_price_cents=ingredient_data.get("unit_price_cents") or 0,
            )
            sess.add(ingredient)
            sess.flush()

            log_operation(
                logger,
                operation="create_ingredient",
                outcome="success",
                ingredient_id=ingredient.id,
                unit_price_cents=ingredient.unit_price_cents,
            )
            return ingredient

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create ingredient", e)


def get_ingredient(ingredient_id: int, session: Optional[Session] = None) -> Ingredient:
    """
    Retrieve an ingredient by ID.

    Raises:
        IngredientNotFound: If ingredient doesn't exist
    """
    try:
        with scope_for(session) as sess:
            ingredient = sess.get(Ingredient, ingredient_id)
            if ingredient is None:
                raise IngredientNotFound(ingredient_id)
            return ingredient

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to retrieve ingredient {ingredient_id}", e)


def update_ingredient(
    ingredient_id: int, ingredient_data: Dict, session: Optional[Session] = None
) -> Ingredient:
    """
    Update an ingredient.

    A change of unit_price_cents re-derives est_cost_cents for every recipe
    with a line for this ingredient before the unit of work commits.

    Args:
        ingredient_id: Ingredient ID
        ingredient_data: Dictionary with the fields to change
        session: Optional database session

    Returns:
        Updated Ingredient

    Raises:
        IngredientNotFound: If ingredient doesn't exist
        ValidationError: If data is invalid or the new name is taken
        AggregateConsistencyError: If a recipe cost recompute fails
        DatabaseError: If database operation fails
    """
    raise_if_errors(validate_ingredient_data(ingredient_data, partial=True))

    try:
        with scope_for(session) as sess:
            ingredient = sess.get(Ingredient, ingredient_id)
            if ingredient is None:
                raise IngredientNotFound(ingredient_id)

            old_price = ingredient.unit_price_cents

            if "name" in ingredient_data:
                name = ingredient_data["name"].strip()
                _check_unique_name(sess, name, exclude_id=ingredient_id)
                ingredient.name = name
            if "name_uk" in ingredient_data:
                ingredient.name_uk = (ingredient_data["name_uk"] or "").strip() or None
            if ingredient_data.get("default_unit") is not None:
                ingredient.default_unit = ingredient_data["default_unit"]
            if "category" in ingredient_data:
                ingredient.category = ingredient_data["category"]
            if ingredient_data.get("unit_price_cents") is not None:
                ingredient.unit_price_cents = ingredient_data["unit_price_cents"]

            recipes_recalculated = 0
            if ingredient.unit_price_cents != old_price:
                recipes_recalculated = aggregate_service.recalculate_costs_for_ingredient(
                    ingredient_id, session=sess
                )

            sess.flush()

            log_operation(
                logger,
                operation="update_ingredient",
                outcome="success",
                ingredient_id=ingredient_id,
                unit_price_cents=ingredient.unit_price_cents,
                recipes_recalculated=recipes_recalculated,
            )
            return ingredient

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update ingredient {ingredient_id}", e)


def delete_ingredient(ingredient_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete an ingredient that no recipe uses.

    Raises:
        IngredientNotFound: If ingredient doesn't exist
        IngredientInUse: If any recipe line references the ingredient
        DatabaseError: If database operation fails
    """
    try:
        with scope_for(session) as sess:
            ingredient = sess.get(Ingredient, ingredient_id)
            if ingredient is None:
                raise IngredientNotFound(ingredient_id)

            recipe_count = (
                sess.query(func.count(RecipeIngredient.id))
                .filter(RecipeIngredient.ingredient_id == ingredient_id)
                .scalar()
            )
            if recipe_count:
                raise IngredientInUse(ingredient_id, recipe_count)

            sess.delete(ingredient)
            sess.flush()

            log_operation(
                logger, operation="delete_ingredient", outcome="success", ingredient_id=ingredient_id
            )
            return True

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete ingredient {ingredient_id}", e)


def search_ingredients(
    query: Optional[str] = None,
    category: Optional[str] = None,
    sort: str = "name",
    order: str = "asc",
    page: int = DEFAULT_PAGE,
    per_page: int = DEFAULT_PER_PAGE,
    session: Optional[Session] = None,
) -> PageResult[Ingredient]:
    """
    Search the ingredient catalog.

    Args:
        query: Case-insensitive substring of the ingredient name or its
            Ukrainian name
        category: Exact ingredient category
        sort: "name", "unit_price_cents" or "created"
        order: "asc" or "desc"
        page: Page number (>= 1)
        per_page: Page size (1-100)
        session: Optional database session

    Returns:
        PageResult of Ingredient, tie-broken by ascending id

    Raises:
        ValidationError: If any input is invalid
    """
    raise_if_errors(validate_ingredient_search(query, category, sort, order, page, per_page))
    pagination = PaginationParams(page=page, per_page=per_page)

    try:
        with scope_for(session) as sess:
            q = sess.query(Ingredient)
            if query and query.strip():
                term = query.strip()
                q = q.filter(
                    or_(
                        Ingredient.name.icontains(term, autoescape=True),
                        Ingredient.name_uk.icontains(term, autoescape=True),
                    )
                )
            if category is not None:
                q = q.filter(Ingredient.category == category)

            total_count = q.count()

            column = INGREDIENT_SORT_COLUMNS[sort]
            primary = column.asc() if order == "asc" else column.desc()
            items = (
                q.order_by(primary, Ingredient.id.asc())
                .offset(pagination.offset())
                .limit(pagination.per_page)
                .all()
            )

            log_operation(
                logger,
                operation="search_ingredients",
                outcome="success",
                level=logging.DEBUG,
                total_count=total_count,
            )
            return PageResult(
                items=items,
                page=pagination.page,
                per_page=pagination.per_page,
                total_count=total_count,
            )

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to search ingredients", e)
