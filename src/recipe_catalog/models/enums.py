"""
Enumerations for recipe models.

- Difficulty: How demanding a recipe is to prepare
- RatingOutcome: Whether a rating upsert inserted or updated a row
"""

from enum import Enum


class Difficulty(str, Enum):
    """
    Recipe difficulty level.

    Stored by value in the recipes table so the column stays readable.
    """

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class RatingOutcome(str, Enum):
    """
    Result tag for rate_recipe().

    Values:
        CREATED: No rating existed for the (recipe, user) pair; a row was inserted
        UPDATED: The existing rating for the pair was changed in place
    """

    CREATED = "created"
    UPDATED = "updated"
