"""
Category Service - CRUD and tree navigation for recipe categories.

Categories form a tree through parent_id. Siblings are ordered by position,
then name. Moving a category under itself or one of its descendants is
rejected. A category can only be deleted once it has no recipes and no
subcategories.

recipes_count is never written here; aggregate_service re-derives it when
recipes are created, deleted or moved between categories.

Session Management Pattern:
- All functions accept optional `session` parameter
- If session is provided, use it directly (allows callers to manage transactions)
- If session is None, create a new session_scope for the operation
"""

from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.models import Category, Recipe
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.exceptions import (
    CategoryInUse,
    CategoryNotFound,
    DatabaseError,
    ServiceError,
    ValidationError,
)
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.validators import raise_if_errors, validate_category_data

logger = get_service_logger(__name__)


# ============================================================================
# Helpers
# ============================================================================


def _get(session: Session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFound(category_id)
    return category


def _check_unique_name(session: Session, name: str, exclude_id: Optional[int] = None) -> None:
    query = session.query(Category.id).filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise ValidationError({"name": [f"'{name}' is already taken"]})


def would_create_cycle(session: Session, category_id: int, new_parent_id: int) -> bool:
    """
    Check whether putting category_id under new_parent_id would form a cycle.

    Walks from the proposed parent up to its root; meeting category_id on
    the way (or the parent being the category itself) means a cycle.
    """
    current = session.get(Category, new_parent_id)
    while current is not None:
        if current.id == category_id:
            return True
        current = current.parent
    return False


def _ordered(query):
    return query.order_by(Category.position, Category.name, Category.id)


# ============================================================================
# Queries
# ============================================================================


def list_categories(session: Optional[Session] = None) -> List[Category]:
    """List all categories ordered by position, then name."""
    try:
        with scope_for(session) as sess:
            return _ordered(sess.query(Category)).all()
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to list categories", e)


def list_root_categories(session: Optional[Session] = None) -> List[Category]:
    """List top-level categories (no parent) ordered by position, then name."""
    try:
        with scope_for(session) as sess:
            return _ordered(sess.query(Category).filter(Category.parent_id.is_(None))).all()
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to list root categories", e)


def get_children(category_id: int, session: Optional[Session] = None) -> List[Category]:
    """
    Get the direct subcategories of a category.

    Raises:
        CategoryNotFound: If category doesn't exist
    """
    try:
        with scope_for(session) as sess:
            _get(sess, category_id)
            return _ordered(sess.query(Category).filter(Category.parent_id == category_id)).all()
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to list children of category {category_id}", e)


def get_ancestors(category_id: int, session: Optional[Session] = None) -> List[Category]:
    """
    Get the path from a category up to its root.

    Returns:
        Ancestors ordered from the immediate parent to the root; empty for a
        root category

    Raises:
        CategoryNotFound: If category doesn't exist
    """
    try:
        with scope_for(session) as sess:
            ancestors = []
            current = _get(sess, category_id).parent
            while current is not None:
                ancestors.append(current)
                current = current.parent
            return ancestors
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to load ancestors of category {category_id}", e)


def get_category(category_id: int, session: Optional[Session] = None) -> Category:
    """
    Get a category by ID.

    Raises:
        CategoryNotFound: If category doesn't exist
    """
    try:
        with scope_for(session) as sess:
            return _get(sess, category_id)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to retrieve category {category_id}", e)


# ============================================================================
# Mutations
# ============================================================================


def create_category(category_data: Dict, session: Optional[Session] = None) -> Category:
    """
    Create a new category.

    Args:
        category_data: Dictionary with name (required), description,
            position and parent_id (optional)
        session: Optional database session

    Returns:
        Created Category with recipes_count 0

    Raises:
        ValidationError: If name is empty, too long or already taken
        CategoryNotFound: If parent_id doesn't exist
        DatabaseError: If database operation fails
    """
    raise_if_errors(validate_category_data(category_data))
    name = category_data["name"].strip()
    parent_id = category_data.get("parent_id")

    try:
        with scope_for(session) as sess:
            _check_unique_name(sess, name)
            parent = _get(sess, parent_id) if parent_id is not None else None

            category = Category(
                name=name,
                description=category_data.get("description"),
                position=category_data.get("position") or 0,
                parent=parent,
                recipes_count=0,
            )
            sess.add(category)
            sess.flush()

            log_operation(
                logger,
                operation="create_category",
                outcome="success",
                category_id=category.id,
                parent_id=category.parent_id,
            )
            return category

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create category", e)


def update_category(
    category_id: int, category_data: Dict, session: Optional[Session] = None
) -> Category:
    """
    Update a category.

    A parent_id key moves the category: None makes it a root, an id puts it
    under that category.

    Raises:
        CategoryNotFound: If the category or the new parent doesn't exist
        ValidationError: If data is invalid, the new name is taken, or the
            move would put the category under itself or a descendant
        DatabaseError: If database operation fails
    """
    raise_if_errors(validate_category_data(category_data, partial=True))

    try:
        with scope_for(session) as sess:
            category = _get(sess, category_id)

            if "name" in category_data:
                name = category_data["name"].strip()
                _check_unique_name(sess, name, exclude_id=category_id)
                category.name = name
            if "description" in category_data:
                category.description = category_data["description"]
            if category_data.get("position") is not None:
                category.position = category_data["position"]
            if "parent_id" in category_data:
                parent_id = category_data["parent_id"]
                if parent_id is None:
                    category.parent = None
                else:
                    parent = _get(sess, parent_id)
                    if would_create_cycle(sess, category_id, parent_id):
                        raise ValidationError(
                            {"parent_id": ["cannot be the category itself or one of its descendants"]}
                        )
                    category.parent = parent

            sess.flush()
            log_operation(
                logger,
                operation="update_category",
                outcome="success",
                category_id=category_id,
                parent_id=category.parent_id,
            )
            return category

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update category {category_id}", e)


def delete_category(category_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete a category that has no recipes and no subcategories.

    Raises:
        CategoryNotFound: If category doesn't exist
        CategoryInUse: If any recipe or subcategory belongs to the category
        DatabaseError: If database operation fails
    """
    try:
        with scope_for(session) as sess:
            category = _get(sess, category_id)

            recipe_count = (
                sess.query(func.count(Recipe.id)).filter(Recipe.category_id == category_id).scalar()
            )
            child_count = (
                sess.query(func.count(Category.id))
                .filter(Category.parent_id == category_id)
                .scalar()
            )
            if recipe_count or child_count:
                raise CategoryInUse(category_id, recipe_count, child_count)

            sess.delete(category)
            sess.flush()
            log_operation(logger, operation="delete_category", outcome="success", category_id=category_id)
            return True

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete category {category_id}", e)
