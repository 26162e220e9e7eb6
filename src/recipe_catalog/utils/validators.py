"""
Input validation functions for the Recipe Catalog.

This module provides validation functions for all service inputs:
- Field-level checks returning (is_valid, error_message) tuples
- Record-level checks returning a {field: [messages]} error map
- raise_if_errors() to turn a non-empty map into a ValidationError

Every check here runs before any data access.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from recipe_catalog.services.exceptions import ValidationError

from .constants import (
    DIFFICULTIES,
    ERROR_AT_LEAST_ONE,
    ERROR_INVALID_INTEGER,
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_NOT_INCLUDED,
    ERROR_OUT_OF_RANGE,
    ERROR_REQUIRED_FIELD,
    ERROR_TOO_LONG,
    ERROR_TOO_PRECISE,
    INGREDIENT_CATEGORIES,
    INGREDIENT_SORT_FIELDS,
    INGREDIENT_UNITS,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_PER_PAGE,
    MAX_QUANTITY_DECIMALS,
    MAX_SCORE,
    MAX_TITLE_LENGTH,
    MAX_UNIT_LENGTH,
    MIN_SCORE,
    RECIPE_FIELDS,
    RECIPE_SORT_FIELDS,
    SORT_DIRECTIONS,
)

ErrorMap = Dict[str, List[str]]


# ============================================================================
# Field-level checks
# ============================================================================


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a number-like value to Decimal, or None when it isn't one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return result if result.is_finite() else None


def validate_required_string(value: Optional[str]) -> Tuple[bool, str]:
    """
    Validate that a string field is present and not blank.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or not isinstance(value, str) or value.strip() == "":
        return False, ERROR_REQUIRED_FIELD
    return True, ""


def validate_string_length(value: Optional[str], max_length: int) -> Tuple[bool, str]:
    """Validate that a string doesn't exceed max_length."""
    if isinstance(value, str) and len(value) > max_length:
        return False, ERROR_TOO_LONG.format(max_length=max_length)
    return True, ""


def validate_positive_integer(value: Any) -> Tuple[bool, str]:
    """Validate that a value is an integer > 0."""
    if not _is_integer(value):
        return False, ERROR_INVALID_INTEGER
    if value <= 0:
        return False, ERROR_INVALID_POSITIVE
    return True, ""


def validate_non_negative_integer(value: Any) -> Tuple[bool, str]:
    """Validate that a value is an integer >= 0."""
    if not _is_integer(value):
        return False, ERROR_INVALID_INTEGER
    if value < 0:
        return False, ERROR_INVALID_NON_NEGATIVE
    return True, ""


def validate_positive_number(value: Any) -> Tuple[bool, str]:
    """Validate that a value is a number > 0 (int, Decimal, float or numeric string)."""
    number = to_decimal(value)
    if number is None:
        return False, ERROR_INVALID_NUMBER
    if number <= 0:
        return False, ERROR_INVALID_POSITIVE
    return True, ""


def validate_decimal_places(value: Any, places: int) -> Tuple[bool, str]:
    """
    Validate that a number has no more than `places` significant decimals.

    Trailing zeros don't count: "1.2500" passes with places=3, "0.3339" fails.
    """
    number = to_decimal(value)
    if number is None:
        return False, ERROR_INVALID_NUMBER
    if number != number.quantize(Decimal(1).scaleb(-places)):
        return False, ERROR_TOO_PRECISE.format(places=places)
    return True, ""


def validate_integer_range(value: Any, min_value: int, max_value: int) -> Tuple[bool, str]:
    """Validate that a value is an integer within [min_value, max_value]."""
    if not _is_integer(value):
        return False, ERROR_INVALID_INTEGER
    if value < min_value or value > max_value:
        return False, ERROR_OUT_OF_RANGE.format(min_value=min_value, max_value=max_value)
    return True, ""


def validate_number_range(value: Any, min_value: Decimal, max_value: Decimal) -> Tuple[bool, str]:
    """Validate that a value is a number within [min_value, max_value]."""
    number = to_decimal(value)
    if number is None:
        return False, ERROR_INVALID_NUMBER
    if number < min_value or number > max_value:
        return False, ERROR_OUT_OF_RANGE.format(min_value=min_value, max_value=max_value)
    return True, ""


def validate_choice(value: Any, choices: Iterable[str]) -> Tuple[bool, str]:
    """Validate that a value is one of the allowed choices."""
    choices = list(choices)
    if getattr(value, "value", value) not in choices:
        return False, ERROR_NOT_INCLUDED.format(choices=", ".join(choices))
    return True, ""


# ============================================================================
# Error map helpers
# ============================================================================


def _check(errors: ErrorMap, field: str, result: Tuple[bool, str]) -> None:
    is_valid, message = result
    if not is_valid:
        errors.setdefault(field, []).append(message)


def raise_if_errors(errors: ErrorMap) -> None:
    """
    Raise ValidationError when the error map is not empty.

    Raises:
        ValidationError: With the full field-level map
    """
    if errors:
        raise ValidationError(errors)


# ============================================================================
# Search inputs
# ============================================================================


def validate_pagination(page: Any, per_page: Any) -> ErrorMap:
    """Validate page (>= 1) and per_page (1-100)."""
    errors: ErrorMap = {}
    _check(errors, "page", validate_positive_integer(page))
    _check(errors, "per_page", validate_integer_range(per_page, 1, MAX_PER_PAGE))
    return errors


def validate_scope_criteria(criteria) -> ErrorMap:
    """
    Validate Catalog Filter criteria other than sorting.

    Args:
        criteria: ScopeCriteria (or SearchCriteria)

    Returns:
        Error map, empty when valid
    """
    errors = validate_pagination(criteria.page, criteria.per_page)

    if criteria.query is not None and not isinstance(criteria.query, str):
        errors.setdefault("query", []).append("must be a string")
    if criteria.category_id is not None:
        _check(errors, "category_id", validate_positive_integer(criteria.category_id))
    if criteria.difficulty is not None:
        _check(errors, "difficulty", validate_choice(criteria.difficulty, DIFFICULTIES))
    if criteria.max_cost is not None:
        _check(errors, "max_cost", validate_positive_integer(criteria.max_cost))
    if criteria.max_total_time is not None:
        _check(errors, "max_total_time", validate_positive_integer(criteria.max_total_time))
    if criteria.min_rating is not None:
        _check(
            errors,
            "min_rating",
            validate_number_range(criteria.min_rating, Decimal(0), Decimal(MAX_SCORE)),
        )

    return errors


def validate_search_criteria(criteria) -> ErrorMap:
    """Validate full Catalog Filter criteria, including sort key and direction."""
    errors = validate_scope_criteria(criteria)
    _check(errors, "sort", validate_choice(criteria.sort, RECIPE_SORT_FIELDS))
    _check(errors, "order", validate_choice(criteria.order, SORT_DIRECTIONS))
    return errors


def validate_ingredient_match_request(
    ingredient_ids: Any, match_percentage: Any, include_optional: Any
) -> ErrorMap:
    """
    Validate the matcher-specific inputs of search_by_ingredients().

    ingredient_ids must be a non-empty collection of positive integers.
    """
    errors: ErrorMap = {}

    if ingredient_ids is None or isinstance(ingredient_ids, (str, bytes)):
        errors["ingredient_ids"] = [ERROR_REQUIRED_FIELD]
    else:
        ids = list(ingredient_ids)
        if not ids:
            errors["ingredient_ids"] = [ERROR_AT_LEAST_ONE]
        elif not all(_is_integer(value) and value > 0 for value in ids):
            errors["ingredient_ids"] = ["must contain only positive whole numbers"]

    _check(errors, "match_percentage", validate_integer_range(match_percentage, 1, 100))

    if not isinstance(include_optional, bool):
        errors.setdefault("include_optional", []).append("must be true or false")

    return errors


def validate_budget_request(budget_cents: Any, servings: Any) -> ErrorMap:
    """Validate budget (> 0) and requested servings (>= 1)."""
    errors: ErrorMap = {}
    _check(errors, "budget_cents", validate_positive_integer(budget_cents))
    _check(errors, "servings", validate_positive_integer(servings))
    return errors


def validate_ingredient_search(
    query: Any, category: Any, sort: Any, order: Any, page: Any, per_page: Any
) -> ErrorMap:
    """Validate ingredient catalog search inputs."""
    errors = validate_pagination(page, per_page)
    if query is not None and not isinstance(query, str):
        errors.setdefault("query", []).append("must be a string")
    if category is not None:
        _check(errors, "category", validate_choice(category, INGREDIENT_CATEGORIES))
    _check(errors, "sort", validate_choice(sort, INGREDIENT_SORT_FIELDS))
    _check(errors, "order", validate_choice(order, SORT_DIRECTIONS))
    return errors


# ============================================================================
# Record inputs
# ============================================================================


def validate_recipe_data(data: Dict[str, Any], partial: bool = False) -> ErrorMap:
    """
    Validate recipe fields.

    Args:
        data: Recipe field values
        partial: If True (updates), only validate keys that are present

    Returns:
        Error map, empty when valid
    """
    errors: ErrorMap = {}

    for key in data:
        if key not in RECIPE_FIELDS:
            errors.setdefault(key, []).append("is not a recipe field that can be set")

    def wanted(key: str) -> bool:
        return not partial or key in data

    if wanted("title"):
        _check(errors, "title", validate_required_string(data.get("title")))
        _check(errors, "title", validate_string_length(data.get("title"), MAX_TITLE_LENGTH))
    if wanted("instructions"):
        _check(errors, "instructions", validate_required_string(data.get("instructions")))
    if wanted("prep_time_min"):
        _check(errors, "prep_time_min", validate_positive_integer(data.get("prep_time_min")))
    if "cook_time_min" in data or not partial:
        _check(
            errors, "cook_time_min", validate_non_negative_integer(data.get("cook_time_min", 0))
        )
    if "servings" in data:
        _check(errors, "servings", validate_positive_integer(data["servings"]))
    if data.get("difficulty") is not None:
        _check(errors, "difficulty", validate_choice(data["difficulty"], DIFFICULTIES))
    if data.get("category_id") is not None:
        _check(errors, "category_id", validate_positive_integer(data["category_id"]))
    if data.get("description") is not None and not isinstance(data["description"], str):
        errors.setdefault("description", []).append("must be a string")

    return errors


def validate_ingredient_lines(lines: List[Dict[str, Any]]) -> ErrorMap:
    """
    Validate a full ingredient-line set.

    Errors are keyed "ingredients[<index>].<field>". An ingredient may appear
    only once per recipe, and a quantity must fit the stored precision
    (MAX_QUANTITY_DECIMALS) so the cached cost matches the stored lines.
    """
    errors: ErrorMap = {}
    seen = set()

    for index, line in enumerate(lines):
        prefix = f"ingredients[{index}]"
        ingredient_id = line.get("ingredient_id")

        _check(errors, f"{prefix}.ingredient_id", validate_positive_integer(ingredient_id))
        quantity_ok, quantity_error = validate_positive_number(line.get("quantity"))
        if quantity_ok:
            _check(
                errors,
                f"{prefix}.quantity",
                validate_decimal_places(line["quantity"], MAX_QUANTITY_DECIMALS),
            )
        else:
            errors.setdefault(f"{prefix}.quantity", []).append(quantity_error)
        _check(errors, f"{prefix}.unit", validate_required_string(line.get("unit")))
        _check(errors, f"{prefix}.unit", validate_string_length(line.get("unit"), MAX_UNIT_LENGTH))
        _check(errors, f"{prefix}.notes", validate_string_length(line.get("notes"), MAX_NOTES_LENGTH))
        if "optional" in line and not isinstance(line["optional"], bool):
            errors.setdefault(f"{prefix}.optional", []).append("must be true or false")

        if ingredient_id in seen:
            errors.setdefault(f"{prefix}.ingredient_id", []).append("is listed more than once")
        seen.add(ingredient_id)

    return errors


def validate_ingredient_data(data: Dict[str, Any], partial: bool = False) -> ErrorMap:
    """
    Validate ingredient fields.

    Args:
        data: Ingredient field values
        partial: If True (updates), only validate keys that are present
    """
    errors: ErrorMap = {}

    if not partial or "name" in data:
        _check(errors, "name", validate_required_string(data.get("name")))
        _check(errors, "name", validate_string_length(data.get("name"), MAX_NAME_LENGTH))
    if data.get("name_uk") is not None:
        _check(errors, "name_uk", validate_required_string(data["name_uk"]))
        _check(errors, "name_uk", validate_string_length(data["name_uk"], MAX_NAME_LENGTH))
    if data.get("default_unit") is not None:
        _check(errors, "default_unit", validate_choice(data["default_unit"], INGREDIENT_UNITS))
    if data.get("category") is not None:
        _check(errors, "category", validate_choice(data["category"], INGREDIENT_CATEGORIES))
    if data.get("unit_price_cents") is not None:
        _check(
            errors, "unit_price_cents", validate_non_negative_integer(data["unit_price_cents"])
        )

    return errors


def validate_rating_data(score: Any, review: Any) -> ErrorMap:
    """Validate a rating score (1-5) and optional review."""
    errors: ErrorMap = {}
    _check(errors, "score", validate_integer_range(score, MIN_SCORE, MAX_SCORE))
    if review is not None and not isinstance(review, str):
        errors.setdefault("review", []).append("must be a string")
    return errors


def validate_category_data(data: Dict[str, Any], partial: bool = False) -> ErrorMap:
    """
    Validate category fields.

    parent_id may be None (a root category); whether the parent exists and
    keeps the tree acyclic is checked by the service.
    """
    errors: ErrorMap = {}
    if not partial or "name" in data:
        _check(errors, "name", validate_required_string(data.get("name")))
        _check(errors, "name", validate_string_length(data.get("name"), MAX_NAME_LENGTH))
    if data.get("description") is not None and not isinstance(data["description"], str):
        errors.setdefault("description", []).append("must be a string")
    if data.get("position") is not None:
        _check(errors, "position", validate_non_negative_integer(data["position"]))
    if data.get("parent_id") is not None:
        _check(errors, "parent_id", validate_positive_integer(data["parent_id"]))
    return errors


def validate_user_data(name: Any, email: Any) -> ErrorMap:
    """Validate user name and email."""
    errors: ErrorMap = {}
    _check(errors, "name", validate_required_string(name))
    _check(errors, "name", validate_string_length(name, MAX_NAME_LENGTH))
    _check(errors, "email", validate_required_string(email))
    _check(errors, "email", validate_string_length(email, MAX_EMAIL_LENGTH))
    if isinstance(email, str) and email.strip() and "@" not in email:
        errors.setdefault("email", []).append("must be a valid email address")
    return errors
