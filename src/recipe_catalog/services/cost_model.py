"""
Cost Model - ingredient lines to recipe cost.

Pure functions over already-loaded rows:
- line_cost(): quantity x unit price, truncated to whole minor units
- recipe_cost(): sum of line costs, 0 for a recipe with no lines

A line whose ingredient (or ingredient price) is missing contributes 0 and
is logged; it never raises, so one dangling reference cannot block an
aggregate recompute.
"""

import logging
from decimal import Decimal, ROUND_FLOOR
from typing import Iterable

from recipe_catalog.models import Recipe, RecipeIngredient
from recipe_catalog.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)


def line_cost(line: RecipeIngredient) -> int:
    """
    Calculate the cost of one ingredient line.

    Args:
        line: Recipe ingredient line with its ingredient loaded

    Returns:
        floor(quantity * unit_price_cents), or 0 when the ingredient
        reference or its price is missing

    Example:
        2 x tomato @ 50 -> 100; 0.333 x saffron @ 1000 -> 333
    """
    ingredient = line.ingredient
    if ingredient is None or ingredient.unit_price_cents is None:
        log_operation(
            logger,
            operation="line_cost",
            outcome="dangling_ingredient",
            level=logging.WARNING,
            recipe_id=line.recipe_id,
            ingredient_id=line.ingredient_id,
        )
        return 0

    quantity = Decimal(str(line.quantity))
    total = quantity * ingredient.unit_price_cents
    return int(total.to_integral_value(rounding=ROUND_FLOOR))


def lines_cost(lines: Iterable[RecipeIngredient]) -> int:
    """Sum line_cost() over a collection of lines."""
    return sum((line_cost(line) for line in lines), 0)


def recipe_cost(recipe: Recipe) -> int:
    """
    Calculate total recipe cost from its ingredient lines.

    Args:
        recipe: Recipe with recipe_ingredients loaded

    Returns:
        Total cost in minor currency units (0 for a recipe without lines)
    """
    return lines_cost(recipe.recipe_ingredients)
