"""
Constants and enumerations for the Recipe Catalog.

This module defines all system-wide constants including:
- Application metadata
- Ingredient units and categories
- Search defaults (page sizes, thresholds, servings)
- Field limits and validation messages
"""

from typing import List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Recipe Catalog"
APP_VERSION = "0.1.0"
DATABASE_FILENAME = "recipe_catalog.db"

# ============================================================================
# Ingredients
# ============================================================================

INGREDIENT_UNITS: List[str] = [
    "g",  # Gram
    "kg",  # Kilogram
    "ml",  # Milliliter
    "l",  # Liter
    "pcs",  # Pieces
    "tbsp",  # Tablespoon
    "tsp",  # Teaspoon
    "cup",  # Cup
]

DEFAULT_INGREDIENT_UNIT = "pcs"

INGREDIENT_CATEGORIES: List[str] = [
    "dairy",
    "vegetables",
    "fruits",
    "meat",
    "fish",
    "grains",
    "spices",
    "oils",
    "other",
]

# ============================================================================
# Recipes
# ============================================================================

DIFFICULTIES: List[str] = ["easy", "medium", "hard"]
DEFAULT_DIFFICULTY = "easy"
DEFAULT_SERVINGS = 4

# Fields callers may set; cached aggregates are derived, never written directly
RECIPE_FIELDS: List[str] = [
    "title",
    "description",
    "instructions",
    "prep_time_min",
    "cook_time_min",
    "servings",
    "difficulty",
    "category_id",
]

MIN_SCORE = 1
MAX_SCORE = 5

# ============================================================================
# Search & Pagination
# ============================================================================

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100

RECIPE_SORT_FIELDS: List[str] = ["rating", "cost", "time", "created"]
INGREDIENT_SORT_FIELDS: List[str] = ["name", "unit_price_cents", "created"]
SORT_DIRECTIONS: List[str] = ["asc", "desc"]

DEFAULT_RECIPE_SORT = "rating"
DEFAULT_SORT_DIRECTION = "desc"

# Minimum share of required ingredients a recipe must have covered
DEFAULT_MATCH_PERCENTAGE = 80

# ============================================================================
# Field Limits
# ============================================================================

MAX_TITLE_LENGTH = 255
MAX_NAME_LENGTH = 100
MAX_UNIT_LENGTH = 20
MAX_NOTES_LENGTH = 255
MAX_EMAIL_LENGTH = 255

# Ingredient quantities are stored as NUMERIC(10, 3)
MAX_QUANTITY_DECIMALS = 3

# ============================================================================
# Validation Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "is required"
ERROR_INVALID_NUMBER = "must be a valid number"
ERROR_INVALID_INTEGER = "must be a whole number"
ERROR_INVALID_POSITIVE = "must be greater than 0"
ERROR_INVALID_NON_NEGATIVE = "must be greater than or equal to 0"
ERROR_TOO_LONG = "must be {max_length} characters or less"
ERROR_NOT_INCLUDED = "must be one of: {choices}"
ERROR_OUT_OF_RANGE = "must be between {min_value} and {max_value}"
ERROR_AT_LEAST_ONE = "must contain at least one element"
ERROR_TOO_PRECISE = "must have at most {places} decimal places"
