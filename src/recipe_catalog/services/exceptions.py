"""Service layer exception classes for the Recipe Catalog.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the catalog.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError            - malformed or out-of-range input
    ├── RecipeNotFound             - referenced entity does not exist
    ├── IngredientNotFound
    ├── CategoryNotFound
    ├── UserNotFound
    ├── RatingNotFound
    ├── IngredientInUse            - delete refused, dependents exist
    ├── CategoryInUse              - delete refused, recipes or subcategories exist
    ├── AggregateConsistencyError  - cached recipe or category aggregate could not be recomputed
    └── DatabaseError              - wrapped SQLAlchemy failure
"""

from typing import Dict, List, Optional


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions inherit from this class.
    """

    pass


class ValidationError(ServiceError):
    """Raised when input validation fails.

    Carries a field-level detail map so callers can report every problem at
    once. Raised before any data access.

    Args:
        errors: Mapping of field name to the list of messages for that field

    Example:
        >>> raise ValidationError({"per_page": ["must be between 1 and 100"]})
        ValidationError: Validation failed: per_page must be between 1 and 100
    """

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        parts = [f"{field} {message}" for field, messages in errors.items() for message in messages]
        super().__init__(f"Validation failed: {'; '.join(parts)}")


class NotFoundError(ServiceError):
    """Base class for missing-entity errors."""

    resource = "Record"

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"{self.resource} with ID {identifier} not found")


class RecipeNotFound(NotFoundError):
    """Raised when a recipe cannot be found by ID."""

    resource = "Recipe"

    @property
    def recipe_id(self) -> int:
        return self.identifier


class IngredientNotFound(NotFoundError):
    """Raised when an ingredient cannot be found by ID."""

    resource = "Ingredient"

    @property
    def ingredient_id(self) -> int:
        return self.identifier


class CategoryNotFound(NotFoundError):
    """Raised when a category cannot be found by ID."""

    resource = "Category"

    @property
    def category_id(self) -> int:
        return self.identifier


class UserNotFound(NotFoundError):
    """Raised when a user cannot be found by ID."""

    resource = "User"

    @property
    def user_id(self) -> int:
        return self.identifier


class RatingNotFound(ServiceError):
    """Raised when a user has no rating for a recipe.

    Args:
        recipe_id: Recipe that was looked up
        user_id: User whose rating was expected
    """

    def __init__(self, recipe_id: int, user_id: int):
        self.recipe_id = recipe_id
        self.user_id = user_id
        super().__init__(f"Rating for recipe {recipe_id} by user {user_id} not found")


class IngredientInUse(ServiceError):
    """Raised when deleting an ingredient that recipe lines still reference."""

    def __init__(self, ingredient_id: int, recipe_count: int):
        self.ingredient_id = ingredient_id
        self.recipe_count = recipe_count
        super().__init__(
            f"Cannot delete ingredient {ingredient_id}: used in {recipe_count} recipe(s)"
        )


class CategoryInUse(ServiceError):
    """Raised when deleting a category that still has recipes or subcategories."""

    def __init__(self, category_id: int, recipe_count: int, child_count: int = 0):
        self.category_id = category_id
        self.recipe_count = recipe_count
        self.child_count = child_count
        dependents = []
        if recipe_count:
            dependents.append(f"{recipe_count} recipe(s)")
        if child_count:
            dependents.append(f"{child_count} subcategories")
        super().__init__(
            f"Cannot delete category {category_id}: it has {' and '.join(dependents)}"
        )


class AggregateConsistencyError(ServiceError):
    """Raised when a cached aggregate cannot be recomputed.

    Fatal to the enclosing write: propagating it out of session_scope()
    rolls back the detail change together with the failed recompute.

    Args:
        record_id: Recipe (or category) whose aggregate failed
        aggregate: Which aggregate ("cost", "rating" or "recipes_count")
        original_error: Underlying exception
        resource: "recipe" or "category"
    """

    def __init__(
        self,
        record_id: int,
        aggregate: str,
        original_error: Optional[Exception] = None,
        resource: str = "recipe",
    ):
        self.record_id = record_id
        self.aggregate = aggregate
        self.original_error = original_error
        self.resource = resource
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Failed to recompute {aggregate} for {resource} {record_id}{detail}")

    @property
    def recipe_id(self) -> Optional[int]:
        return self.record_id if self.resource == "recipe" else None


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
