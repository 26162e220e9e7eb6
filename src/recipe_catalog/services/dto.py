"""Data Transfer Objects for the service layer.

This module provides type-safe data structures for search criteria,
pagination, and the per-item results of the two matchers.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

from recipe_catalog.models import Ingredient, Rating, RatingOutcome, Recipe
from recipe_catalog.services.exceptions import ValidationError
from recipe_catalog.utils.constants import (
    DEFAULT_PAGE,
    DEFAULT_PER_PAGE,
    DEFAULT_RECIPE_SORT,
    DEFAULT_SORT_DIRECTION,
    MAX_PER_PAGE,
)

T = TypeVar("T")


@dataclass
class PaginationParams:
    """Pagination parameters for list and search operations.

    Attributes:
        page: Page number (1-indexed, default 1)
        per_page: Items per page (default 20, max 100)

    Raises:
        ValidationError: If page < 1 or per_page is outside 1-100
    """

    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE

    def __post_init__(self) -> None:
        errors: Dict[str, List[str]] = {}
        if self.page < 1:
            errors["page"] = ["must be >= 1"]
        if self.per_page < 1 or self.per_page > MAX_PER_PAGE:
            errors["per_page"] = [f"must be between 1 and {MAX_PER_PAGE}"]
        if errors:
            raise ValidationError(errors)

    def offset(self) -> int:
        """Calculate SQL OFFSET value.

        Examples:
            >>> PaginationParams(page=1, per_page=20).offset()
            0
            >>> PaginationParams(page=3, per_page=25).offset()
            50
        """
        return (self.page - 1) * self.per_page


@dataclass
class PageResult(Generic[T]):
    """Generic paginated result envelope.

    Returned by every search operation. total_count and total_pages describe
    the filtered set before the page was cut.

    Attributes:
        items: Items on this page, in result order
        page: Current page number (1-indexed)
        per_page: Items per page
        total_count: Number of items across all pages

    Properties:
        total_pages: ceil(total_count / per_page); 0 for an empty result
        has_next / has_prev: Navigation helpers
    """

    items: List[T]
    page: int
    per_page: int
    total_count: int

    @property
    def total_pages(self) -> int:
        """Calculate total number of pages.

        Examples:
            >>> PageResult(items=[], page=1, per_page=20, total_count=41).total_pages
            3
            >>> PageResult(items=[], page=1, per_page=20, total_count=0).total_pages
            0
        """
        return (self.total_count + self.per_page - 1) // self.per_page

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self, item_to_dict: Optional[Callable[[T], Any]] = None) -> Dict[str, Any]:
        """
        Convert the envelope to a dictionary.

        Args:
            item_to_dict: Converter for each item; defaults to item.to_dict()
        """
        convert = item_to_dict or (lambda item: item.to_dict())
        return {
            "items": [convert(item) for item in self.items],
            "page": self.page,
            "per_page": self.per_page,
            "total_count": self.total_count,
            "total_pages": self.total_pages,
        }


def paginate_sequence(items: Sequence[T], pagination: PaginationParams) -> PageResult[T]:
    """Cut one page out of an already filtered and sorted sequence."""
    start = pagination.offset()
    return PageResult(
        items=list(items[start : start + pagination.per_page]),
        page=pagination.page,
        per_page=pagination.per_page,
        total_count=len(items),
    )


@dataclass
class ScopeCriteria:
    """Catalog Filter criteria without sorting.

    Used directly by the ingredient and budget matchers, whose ordering is
    fixed. All supplied criteria are combined with AND; None means "no
    constraint".

    Attributes:
        query: Case-insensitive substring of title or description
        category_id: Category the recipe must belong to
        difficulty: "easy", "medium" or "hard"
        max_cost: Upper bound on cached cost, minor units (> 0)
        max_total_time: Upper bound on prep + cook minutes (> 0)
        min_rating: Lower bound on cached average rating (0-5)
        page: Page number (>= 1)
        per_page: Page size (1-100)
    """

    query: Optional[str] = None
    category_id: Optional[int] = None
    difficulty: Optional[str] = None
    max_cost: Optional[int] = None
    max_total_time: Optional[int] = None
    min_rating: Optional[Decimal] = None
    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE

    def pagination(self) -> PaginationParams:
        return PaginationParams(page=self.page, per_page=self.per_page)


@dataclass
class SearchCriteria(ScopeCriteria):
    """Full Catalog Filter criteria.

    Attributes:
        sort: "rating", "cost", "time" or "created" (default "rating")
        order: "asc" or "desc" (default "desc")
    """

    sort: str = DEFAULT_RECIPE_SORT
    order: str = DEFAULT_SORT_DIRECTION


@dataclass
class IngredientMatch:
    """One result of search_by_ingredients().

    Attributes:
        recipe: Matched recipe
        match_percentage: Share of required ingredients supplied, one decimal
        matched_count: Required ingredients that were supplied
        total_count: Size of the recipe's required set
        missing_ingredients: Required ingredients not supplied, by ingredient id
    """

    recipe: Recipe
    match_percentage: Decimal
    matched_count: int
    total_count: int
    missing_ingredients: List[Ingredient] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipe": self.recipe.to_dict(),
            "match_percentage": str(self.match_percentage),
            "matched_count": self.matched_count,
            "total_count": self.total_count,
            "missing_ingredients": [ingredient.to_dict() for ingredient in self.missing_ingredients],
        }


@dataclass
class BudgetMatch:
    """One result of search_by_budget().

    Attributes:
        recipe: Recipe that fits the budget
        actual_cost: Cached cost scaled to the requested servings, minor units
        remaining_budget: Budget left after actual_cost (never negative)
        budget_usage_percentage: actual_cost as a share of the budget, one decimal
        fits_budget: Always True for returned items
    """

    recipe: Recipe
    actual_cost: int
    remaining_budget: int
    budget_usage_percentage: Decimal
    fits_budget: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipe": self.recipe.to_dict(),
            "actual_cost": self.actual_cost,
            "remaining_budget": self.remaining_budget,
            "budget_usage_percentage": str(self.budget_usage_percentage),
            "fits_budget": self.fits_budget,
        }


@dataclass
class RatingResult:
    """Tagged result of rate_recipe().

    Attributes:
        rating: The stored rating row
        outcome: RatingOutcome.CREATED or RatingOutcome.UPDATED
    """

    rating: Rating
    outcome: RatingOutcome

    @property
    def created(self) -> bool:
        return self.outcome is RatingOutcome.CREATED
