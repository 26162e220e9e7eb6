"""
Database models package.

This package contains all SQLAlchemy ORM models for the catalog.
"""

from .base import Base, BaseModel
from .enums import Difficulty, RatingOutcome
from .category import Category
from .ingredient import Ingredient
from .user import User
from .recipe import Recipe, RecipeIngredient
from .rating import Rating

__all__ = [
    "Base",
    "BaseModel",
    "Difficulty",
    "RatingOutcome",
    "Category",
    "Ingredient",
    "User",
    "Recipe",
    "RecipeIngredient",
    "Rating",
]
