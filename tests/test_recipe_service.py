"""Tests for recipe_service.

Tests cover:
- Create with and without ingredient lines (cost rule applied)
- Full replacement of the ingredient-line set on update
- Validation before data access, including duplicate lines
- Not-found handling for recipes, categories and ingredients
- Delete cascading lines and ratings
- Quantities limited to the stored precision
- Category recipes_count kept in step with create, move and delete
"""

from decimal import Decimal

import pytest

from recipe_catalog.models import Difficulty, Rating, RecipeIngredient
from recipe_catalog.services import (
    aggregate_service,
    category_service,
    ingredient_service,
    rating_service,
    recipe_service,
)
from recipe_catalog.services.exceptions import (
    CategoryNotFound,
    IngredientNotFound,
    RecipeNotFound,
    ValidationError,
)


def _line(ingredient, quantity, **extra):
    line = {"ingredient_id": ingredient.id, "quantity": quantity, "unit": "pcs"}
    line.update(extra)
    return line


class TestCreateRecipe:
    """Tests for create_recipe()."""

    def test_cost_from_lines(self, test_db, ingredients):
        """tomato 2 @ 50 + onion 1 @ 30 -> 130."""
        recipe = recipe_service.create_recipe(
            {"title": "Salsa", "instructions": "Chop everything.", "prep_time_min": 10},
            [_line(ingredients["tomato"], 2), _line(ingredients["onion"], 1)],
        )

        assert recipe.id is not None
        assert recipe.est_cost_cents == 130
        assert recipe.avg_rating == Decimal("0.0")
        assert recipe.ratings_count == 0
        assert len(recipe.recipe_ingredients) == 2

    def test_without_lines(self, test_db):
        recipe = recipe_service.create_recipe(
            {"title": "Toast", "instructions": "Toast it.", "prep_time_min": 2}
        )
        assert recipe.est_cost_cents == 0
        assert recipe.recipe_ingredients == []

    def test_defaults(self, test_db):
        recipe = recipe_service.create_recipe(
            {"title": "Toast", "instructions": "Toast it.", "prep_time_min": 2}
        )
        assert recipe.servings == 4
        assert recipe.cook_time_min == 0
        assert recipe.difficulty == Difficulty.EASY
        assert recipe.category is None

    def test_title_is_stripped(self, test_db):
        recipe = recipe_service.create_recipe(
            {"title": "  Toast  ", "instructions": "Toast it.", "prep_time_min": 2}
        )
        assert recipe.title == "Toast"

    def test_with_category(self, test_db, category):
        recipe = recipe_service.create_recipe(
            {
                "title": "Minestrone",
                "instructions": "Simmer.",
                "prep_time_min": 20,
                "category_id": category.id,
                "difficulty": "medium",
            }
        )
        assert recipe.category.name == "Soups"
        assert recipe.difficulty == Difficulty.MEDIUM

    def test_optional_line_counts_toward_cost(self, test_db, ingredients):
        recipe = recipe_service.create_recipe(
            {"title": "Soup", "instructions": "Simmer.", "prep_time_min": 5},
            [_line(ingredients["tomato"], 1), _line(ingredients["basil"], 5, optional=True)],
        )
        assert recipe.est_cost_cents == 90

    def test_missing_required_fields(self, test_db):
        with pytest.raises(ValidationError) as exc_info:
            recipe_service.create_recipe({"title": ""})

        errors = exc_info.value.errors
        assert errors["title"] == ["is required"]
        assert errors["instructions"] == ["is required"]
        assert errors["prep_time_min"] == ["must be a whole number"]

    def test_cached_fields_cannot_be_set(self, test_db):
        with pytest.raises(ValidationError) as exc_info:
            recipe_service.create_recipe(
                {
                    "title": "Cheap",
                    "instructions": "x",
                    "prep_time_min": 1,
                    "est_cost_cents": 1,
                }
            )
        assert "est_cost_cents" in exc_info.value.errors

    def test_invalid_line(self, test_db, ingredients):
        with pytest.raises(ValidationError) as exc_info:
            recipe_service.create_recipe(
                {"title": "Soup", "instructions": "Simmer.", "prep_time_min": 5},
                [{"ingredient_id": ingredients["tomato"].id, "quantity": 0, "unit": ""}],
            )

        errors = exc_info.value.errors
        assert errors["ingredients[0].quantity"] == ["must be greater than 0"]
        assert errors["ingredients[0].unit"] == ["is required"]

    def test_duplicate_ingredient_rejected(self, test_db, ingredients):
        with pytest.raises(ValidationError) as exc_info:
            recipe_service.create_recipe(
                {"title": "Soup", "instructions": "Simmer.", "prep_time_min": 5},
                [_line(ingredients["tomato"], 1), _line(ingredients["tomato"], 2)],
            )
        assert exc_info.value.errors["ingredients[1].ingredient_id"] == ["is listed more than once"]

    def test_unknown_ingredient(self, test_db, ingredients):
        with pytest.raises(IngredientNotFound) as exc_info:
            recipe_service.create_recipe(
                {"title": "Soup", "instructions": "Simmer.", "prep_time_min": 5},
                [_line(ingredients["tomato"], 1), {"ingredient_id": 999, "quantity": 1, "unit": "g"}],
            )

        assert exc_info.value.ingredient_id == 999
        assert recipe_service.get_recipe_count() == 0

    def test_unknown_category(self, test_db):
        with pytest.raises(CategoryNotFound):
            recipe_service.create_recipe(
                {"title": "Soup", "instructions": "x", "prep_time_min": 5, "category_id": 77}
            )


class TestUpdateRecipe:
    """Tests for update_recipe()."""

    def test_replaces_line_set(self, test_db, ingredients, make_recipe):
        recipe = make_recipe(lines=[(ingredients["tomato"], 2), (ingredients["onion"], 1)])

        updated = recipe_service.update_recipe(
            recipe.id, {}, [_line(ingredients["garlic"], 4)]
        )

        assert updated.est_cost_cents == 40
        assert [line.ingredient_id for line in updated.recipe_ingredients] == [
            ingredients["garlic"].id
        ]

    def test_readding_same_ingredient(self, test_db, ingredients, make_recipe):
        """A line for an ingredient already on the recipe can be re-submitted."""
        recipe = make_recipe(lines=[(ingredients["tomato"], 2)])

        updated = recipe_service.update_recipe(recipe.id, {}, [_line(ingredients["tomato"], 3)])

        assert updated.est_cost_cents == 150
        assert updated.recipe_ingredients[0].quantity == Decimal("3")

    def test_empty_line_set_clears_cost(self, test_db, ingredients, make_recipe):
        recipe = make_recipe(lines=[(ingredients["tomato"], 2)])

        updated = recipe_service.update_recipe(recipe.id, {}, [])

        assert updated.est_cost_cents == 0
        assert updated.recipe_ingredients == []

    def test_fields_only_keeps_lines(self, test_db, ingredients, make_recipe):
        recipe = make_recipe(lines=[(ingredients["tomato"], 2)])

        updated = recipe_service.update_recipe(
            recipe.id, {"title": "Better Soup", "servings": 6, "difficulty": "hard"}
        )

        assert updated.title == "Better Soup"
        assert updated.servings == 6
        assert updated.difficulty == Difficulty.HARD
        assert updated.est_cost_cents == 100
        assert len(updated.recipe_ingredients) == 1

    def test_clear_category(self, test_db, category, make_recipe):
        recipe = make_recipe(category_id=category.id)

        updated = recipe_service.update_recipe(recipe.id, {"category_id": None})

        assert updated.category is None

    def test_partial_validation(self, test_db, make_recipe):
        recipe = make_recipe()
        with pytest.raises(ValidationError) as exc_info:
            recipe_service.update_recipe(recipe.id, {"servings": 0})
        assert list(exc_info.value.errors) == ["servings"]

    def test_not_found(self, test_db):
        with pytest.raises(RecipeNotFound):
            recipe_service.update_recipe(999, {"title": "Nope"})


class TestGetAndDeleteRecipe:
    """Tests for get_recipe() and delete_recipe()."""

    def test_get_loads_lines_and_category(self, test_db, ingredients, category, make_recipe):
        created = make_recipe(lines=[(ingredients["tomato"], 2)], category_id=category.id)

        recipe = recipe_service.get_recipe(created.id)

        assert recipe.category.name == "Soups"
        assert recipe.recipe_ingredients[0].ingredient.name == "Tomato"
        assert recipe.total_time_min == 10

    def test_get_not_found(self, test_db):
        with pytest.raises(RecipeNotFound) as exc_info:
            recipe_service.get_recipe(31)
        assert exc_info.value.recipe_id == 31

    def test_delete_cascades(self, test_db, ingredients, make_recipe, user):
        recipe = make_recipe(lines=[(ingredients["tomato"], 2)])
        rating_service.rate_recipe(recipe.id, user.id, 4)

        assert recipe_service.delete_recipe(recipe.id) is True

        session = test_db()
        assert session.query(RecipeIngredient).count() == 0
        assert session.query(Rating).count() == 0
        with pytest.raises(RecipeNotFound):
            recipe_service.get_recipe(recipe.id)

    def test_delete_not_found(self, test_db):
        with pytest.raises(RecipeNotFound):
            recipe_service.delete_recipe(5)


class TestQuantityPrecision:
    """Quantities are stored with three decimals; finer ones are rejected."""

    def test_four_decimals_rejected(self, test_db, ingredients):
        with pytest.raises(ValidationError) as exc_info:
            recipe_service.create_recipe(
                {"title": "Soup", "instructions": "Simmer.", "prep_time_min": 5},
                [_line(ingredients["tomato"], "0.3339")],
            )

        assert exc_info.value.errors == {
            "ingredients[0].quantity": ["must have at most 3 decimal places"]
        }
        assert recipe_service.get_recipe_count() == 0

    def test_trailing_zeros_accepted(self, test_db, ingredients):
        recipe = recipe_service.create_recipe(
            {"title": "Soup", "instructions": "Simmer.", "prep_time_min": 5},
            [_line(ingredients["tomato"], "1.5000")],
        )
        assert recipe.est_cost_cents == 75

    def test_cached_cost_matches_stored_lines(self, test_db):
        """The cost cached at write time survives a reload unchanged."""
        saffron = ingredient_service.create_ingredient(
            {"name": "Saffron", "unit_price_cents": 10000}
        )
        recipe = recipe_service.create_recipe(
            {"title": "Paella", "instructions": "Simmer.", "prep_time_min": 5},
            [_line(saffron, "0.334")],
        )
        assert recipe.est_cost_cents == 3340

        test_db.remove()

        summary = aggregate_service.recalculate_all()
        assert summary["costs_changed"] == 0
        reloaded = recipe_service.get_recipe(recipe.id)
        assert reloaded.est_cost_cents == 3340
        assert reloaded.recipe_ingredients[0].quantity == Decimal("0.334")

    def test_update_rejects_four_decimals(self, test_db, ingredients, make_recipe):
        recipe = make_recipe(lines=[(ingredients["tomato"], 2)])

        with pytest.raises(ValidationError):
            recipe_service.update_recipe(recipe.id, {}, [_line(ingredients["onion"], "1.0001")])

        assert recipe_service.get_recipe(recipe.id).est_cost_cents == 100


class TestCategoryRecipeCount:
    """recipes_count follows recipes into and out of categories."""

    def test_create_counts(self, test_db, category, make_recipe):
        make_recipe("Soup", category_id=category.id)
        make_recipe("Stew", category_id=category.id)
        make_recipe("Loose")

        assert category_service.get_category(category.id).recipes_count == 2

    def test_move_updates_both_categories(self, test_db, category, make_recipe):
        salads = category_service.create_category({"name": "Salads"})
        recipe = make_recipe(category_id=category.id)

        recipe_service.update_recipe(recipe.id, {"category_id": salads.id})

        assert category_service.get_category(category.id).recipes_count == 0
        assert category_service.get_category(salads.id).recipes_count == 1

    def test_clearing_category(self, test_db, category, make_recipe):
        recipe = make_recipe(category_id=category.id)

        recipe_service.update_recipe(recipe.id, {"category_id": None})

        assert category_service.get_category(category.id).recipes_count == 0

    def test_delete_decrements(self, test_db, category, make_recipe):
        keep = make_recipe("Keep", category_id=category.id)
        gone = make_recipe("Gone", category_id=category.id)

        recipe_service.delete_recipe(gone.id)

        assert category_service.get_category(category.id).recipes_count == 1
        assert recipe_service.get_recipe(keep.id).category_id == category.id

    def test_consistent_after_writes(self, test_db, category, make_recipe):
        recipe = make_recipe(category_id=category.id)
        recipe_service.update_recipe(recipe.id, {"title": "Renamed"})

        summary = aggregate_service.recalculate_all()

        assert summary["category_counts_changed"] == 0
        assert category_service.get_category(category.id).recipes_count == 1
