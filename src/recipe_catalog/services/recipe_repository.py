"""
Recipe Repository - batched data access for the search and aggregate services.

Every function takes the caller's session and issues a bounded number of
queries regardless of how many recipes are involved:
- build_recipe_query() / find_recipes(): Catalog Filter criteria as SQL
- find_lines_for_recipes(): ingredient lines for many recipes at once
- find_ingredients_by_ids(): ingredient rows for many ids at once
- rating_stats() / rating_stats_for_recipes(): count and sum of scores
- recipe_counts_for_categories(): recipes filed under many categories
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from recipe_catalog.models import (
    Category,
    Difficulty,
    Ingredient,
    Rating,
    Recipe,
    RecipeIngredient,
)

# Upper bound on ids per IN clause
IN_CLAUSE_CHUNK_SIZE = 500

TOTAL_TIME = Recipe.prep_time_min + Recipe.cook_time_min

SORT_COLUMNS = {
    "rating": Recipe.avg_rating,
    "cost": Recipe.est_cost_cents,
    "time": TOTAL_TIME,
    "created": Recipe.created_at,
}


def _chunks(ids: List[int]) -> Iterable[List[int]]:
    for start in range(0, len(ids), IN_CLAUSE_CHUNK_SIZE):
        yield ids[start : start + IN_CLAUSE_CHUNK_SIZE]


# ============================================================================
# Recipes
# ============================================================================


def build_recipe_query(session: Session, criteria) -> Query:
    """
    Build a recipe query applying every supplied Catalog Filter criterion.

    Criteria are combined with AND. A blank text query is ignored.

    Args:
        session: Database session
        criteria: ScopeCriteria or SearchCriteria (already validated)

    Returns:
        Unordered, unpaginated Query over Recipe
    """
    query = session.query(Recipe)

    if criteria.query and criteria.query.strip():
        text = criteria.query.strip()
        query = query.filter(
            or_(
                Recipe.title.icontains(text, autoescape=True),
                Recipe.description.icontains(text, autoescape=True),
            )
        )

    if criteria.category_id is not None:
        query = query.filter(Recipe.category_id == criteria.category_id)

    if criteria.difficulty is not None:
        query = query.filter(Recipe.difficulty == Difficulty(criteria.difficulty))

    if criteria.max_cost is not None:
        query = query.filter(Recipe.est_cost_cents <= criteria.max_cost)

    if criteria.max_total_time is not None:
        query = query.filter(TOTAL_TIME <= criteria.max_total_time)

    if criteria.min_rating is not None:
        query = query.filter(Recipe.avg_rating >= Decimal(str(criteria.min_rating)))

    return query


def apply_recipe_sort(query: Query, sort: str, order: str) -> Query:
    """
    Order a recipe query by a sort key, tie-breaking by ascending id.

    Args:
        query: Recipe query
        sort: "rating", "cost", "time" or "created"
        order: "asc" or "desc"
    """
    column = SORT_COLUMNS[sort]
    primary = column.asc() if order == "asc" else column.desc()
    return query.order_by(primary, Recipe.id.asc())


def find_recipes(session: Session, criteria, extra_filters: Tuple = ()) -> List[Recipe]:
    """
    Find all recipes matching the criteria, ordered by id.

    Used by the matchers, which compute their own ordering afterwards.

    Args:
        session: Database session
        criteria: ScopeCriteria (already validated)
        extra_filters: Additional SQL filter expressions

    Returns:
        List of Recipe instances
    """
    query = build_recipe_query(session, criteria)
    if extra_filters:
        query = query.filter(*extra_filters)
    return query.order_by(Recipe.id.asc()).all()


def get_recipe_for_update(session: Session, recipe_id: int) -> Optional[Recipe]:
    """
    Load a recipe and lock its row for the rest of the unit of work.

    Dialects without row locks (SQLite) serialize writers at the database
    level instead.
    """
    return (
        session.query(Recipe)
        .filter(Recipe.id == recipe_id)
        .with_for_update(of=Recipe)
        .first()
    )


def get_recipes_for_update(session: Session, recipe_ids: Iterable[int]) -> List[Recipe]:
    """Load and lock many recipes in one query, ordered by id."""
    ids = sorted(set(recipe_ids))
    recipes: List[Recipe] = []
    for chunk in _chunks(ids):
        recipes.extend(
            session.query(Recipe)
            .filter(Recipe.id.in_(chunk))
            .order_by(Recipe.id)
            .with_for_update(of=Recipe)
            .all()
        )
    return recipes


def find_recipe_ids_using_ingredient(session: Session, ingredient_id: int) -> List[int]:
    """Return ids of all recipes with a line for the ingredient, ascending."""
    rows = (
        session.query(RecipeIngredient.recipe_id)
        .filter(RecipeIngredient.ingredient_id == ingredient_id)
        .order_by(RecipeIngredient.recipe_id)
        .all()
    )
    return [row.recipe_id for row in rows]


# ============================================================================
# Ingredient lines and ingredients
# ============================================================================


def find_lines_for_recipes(
    session: Session, recipe_ids: Iterable[int], include_optional: bool = True
) -> Dict[int, List[RecipeIngredient]]:
    """
    Load ingredient lines for many recipes in batched queries.

    Args:
        session: Database session
        recipe_ids: Recipes to load lines for
        include_optional: If False, lines flagged optional are skipped

    Returns:
        Mapping recipe_id -> lines ordered by ingredient_id. Recipes without
        (matching) lines are absent from the mapping.
    """
    ids = sorted(set(recipe_ids))
    lines_by_recipe: Dict[int, List[RecipeIngredient]] = defaultdict(list)

    for chunk in _chunks(ids):
        query = session.query(RecipeIngredient).filter(RecipeIngredient.recipe_id.in_(chunk))
        if not include_optional:
            query = query.filter(RecipeIngredient.optional.is_(False))
        for line in query.order_by(RecipeIngredient.recipe_id, RecipeIngredient.ingredient_id):
            lines_by_recipe[line.recipe_id].append(line)

    return dict(lines_by_recipe)


def find_ingredients_by_ids(session: Session, ingredient_ids: Iterable[int]) -> List[Ingredient]:
    """
    Load ingredients for many ids in batched queries.

    Unknown ids are skipped.

    Returns:
        Ingredients ordered by id
    """
    ids = sorted(set(ingredient_ids))
    ingredients: List[Ingredient] = []
    for chunk in _chunks(ids):
        ingredients.extend(session.query(Ingredient).filter(Ingredient.id.in_(chunk)).all())
    return sorted(ingredients, key=lambda ingredient: ingredient.id)


# ============================================================================
# Ratings
# ============================================================================


def rating_stats(session: Session, recipe_id: int) -> Tuple[int, int]:
    """
    Count a recipe's ratings and sum their scores in one query.

    Returns:
        (count, sum_of_scores); (0, 0) when the recipe has no ratings
    """
    count, total = (
        session.query(func.count(Rating.id), func.coalesce(func.sum(Rating.score), 0))
        .filter(Rating.recipe_id == recipe_id)
        .one()
    )
    return int(count), int(total)


def rating_stats_for_recipes(session: Session, recipe_ids: Iterable[int]) -> Dict[int, Tuple[int, int]]:
    """
    Count ratings and sum scores for many recipes with grouped queries.

    Returns:
        Mapping recipe_id -> (count, sum_of_scores); unrated recipes are absent
    """
    ids = sorted(set(recipe_ids))
    stats: Dict[int, Tuple[int, int]] = {}
    for chunk in _chunks(ids):
        rows = (
            session.query(Rating.recipe_id, func.count(Rating.id), func.sum(Rating.score))
            .filter(Rating.recipe_id.in_(chunk))
            .group_by(Rating.recipe_id)
            .all()
        )
        for recipe_id, count, total in rows:
            stats[recipe_id] = (int(count), int(total))
    return stats


# ============================================================================
# Categories
# ============================================================================


def get_categories_for_update(session: Session, category_ids: Iterable[int]) -> List[Category]:
    """Load and lock many categories in one query, ordered by id."""
    ids = sorted(set(category_ids))
    categories: List[Category] = []
    for chunk in _chunks(ids):
        categories.extend(
            session.query(Category)
            .filter(Category.id.in_(chunk))
            .order_by(Category.id)
            .with_for_update()
            .all()
        )
    return categories


def recipe_counts_for_categories(session: Session, category_ids: Iterable[int]) -> Dict[int, int]:
    """
    Count the recipes filed directly under each category.

    Returns:
        Mapping category_id -> recipe count; empty categories are absent
    """
    ids = sorted(set(category_ids))
    counts: Dict[int, int] = {}
    for chunk in _chunks(ids):
        rows = (
            session.query(Recipe.category_id, func.count(Recipe.id))
            .filter(Recipe.category_id.in_(chunk))
            .group_by(Recipe.category_id)
            .all()
        )
        for category_id, count in rows:
            counts[category_id] = int(count)
    return counts
