"""Tests for ingredient_match_service.search_by_ingredients().

Tests cover:
- Match percentage against the required set (optional lines excluded by default)
- Threshold filtering and the default threshold
- Exclusion of recipes with an empty required set
- Ordering, pagination and missing-ingredient reporting
- Catalog scope criteria and validation
"""

from decimal import Decimal

import pytest

from recipe_catalog.services.dto import ScopeCriteria
from recipe_catalog.services.exceptions import ValidationError
from recipe_catalog.services.ingredient_match_service import (
    match_percentage_for,
    search_by_ingredients,
)


class TestMatchPercentage:
    """Tests for match_percentage_for()."""

    def test_full_match(self):
        assert match_percentage_for(2, 2) == Decimal("100.0")

    def test_no_match(self):
        assert match_percentage_for(0, 4) == Decimal("0.0")

    def test_rounds_half_up(self):
        """2 / 3 = 66.666 -> 66.7; 1 / 8 = 12.5; 1 / 16 = 6.25 -> 6.3."""
        assert match_percentage_for(2, 3) == Decimal("66.7")
        assert match_percentage_for(1, 8) == Decimal("12.5")
        assert match_percentage_for(1, 16) == Decimal("6.3")


class TestSearchByIngredients:
    """Tests for the matching algorithm."""

    def test_full_match(self, test_db, ingredients, make_recipe):
        """Supplying every required ingredient yields exactly 100.0."""
        tomato, onion = ingredients["tomato"], ingredients["onion"]
        recipe = make_recipe("Salsa", lines=[(tomato, 2), (onion, 1)])

        page = search_by_ingredients([tomato.id, onion.id], match_percentage=100)

        assert page.total_count == 1
        match = page.items[0]
        assert match.recipe.id == recipe.id
        assert match.match_percentage == Decimal("100.0")
        assert match.matched_count == 2
        assert match.total_count == 2
        assert match.missing_ingredients == []

    def test_half_match_meets_threshold_50(self, test_db, ingredients, make_recipe):
        tomato, onion = ingredients["tomato"], ingredients["onion"]
        make_recipe("Salsa", lines=[(tomato, 2), (onion, 1)])

        page = search_by_ingredients([tomato.id], match_percentage=50)

        assert page.total_count == 1
        match = page.items[0]
        assert match.match_percentage == Decimal("50.0")
        assert [i.name for i in match.missing_ingredients] == ["Onion"]

    def test_half_match_excluded_at_threshold_60(self, test_db, ingredients, make_recipe):
        tomato, onion = ingredients["tomato"], ingredients["onion"]
        make_recipe("Salsa", lines=[(tomato, 2), (onion, 1)])

        page = search_by_ingredients([tomato.id], match_percentage=60)

        assert page.total_count == 0
        assert page.items == []

    def test_default_threshold_is_80(self, test_db, ingredients, make_recipe):
        tomato, onion, garlic, oil, basil = (
            ingredients[name] for name in ("tomato", "onion", "garlic", "oil", "basil")
        )
        make_recipe("Four of five", lines=[(tomato, 1), (onion, 1), (garlic, 1), (oil, 1), (basil, 1)])
        make_recipe("Two of three", lines=[(tomato, 1), (onion, 1), (basil, 1)])

        page = search_by_ingredients([tomato.id, onion.id, garlic.id, oil.id])

        assert [m.recipe.title for m in page.items] == ["Four of five"]
        assert page.items[0].match_percentage == Decimal("80.0")

    def test_optional_lines_ignored_by_default(self, test_db, ingredients, make_recipe):
        tomato, basil = ingredients["tomato"], ingredients["basil"]
        make_recipe("Soup", lines=[(tomato, 3), (basil, 1, True)])

        page = search_by_ingredients([tomato.id], match_percentage=100)

        assert page.total_count == 1
        assert page.items[0].total_count == 1
        assert page.items[0].missing_ingredients == []

    def test_include_optional(self, test_db, ingredients, make_recipe):
        tomato, basil = ingredients["tomato"], ingredients["basil"]
        make_recipe("Soup", lines=[(tomato, 3), (basil, 1, True)])

        page = search_by_ingredients([tomato.id], match_percentage=50, include_optional=True)

        match = page.items[0]
        assert match.total_count == 2
        assert match.match_percentage == Decimal("50.0")
        assert [i.name for i in match.missing_ingredients] == ["Basil"]

    def test_recipe_without_required_lines_never_matches(self, test_db, ingredients, make_recipe):
        basil = ingredients["basil"]
        make_recipe("Water")
        make_recipe("Garnish only", lines=[(basil, 1, True)])

        page = search_by_ingredients([basil.id], match_percentage=1)

        assert page.total_count == 0

    def test_ordering_by_percentage_then_id(self, test_db, ingredients, make_recipe):
        tomato, onion, garlic = ingredients["tomato"], ingredients["onion"], ingredients["garlic"]
        half = make_recipe("Half", lines=[(tomato, 1), (garlic, 1)])
        full_a = make_recipe("Full A", lines=[(tomato, 1)])
        full_b = make_recipe("Full B", lines=[(tomato, 1), (onion, 1)])

        page = search_by_ingredients([tomato.id, onion.id], match_percentage=50)

        assert [m.recipe.id for m in page.items] == [full_a.id, full_b.id, half.id]
        assert all(Decimal(0) <= m.match_percentage <= Decimal(100) for m in page.items)

    def test_missing_ingredients_ordered_by_id(self, test_db, ingredients, make_recipe):
        tomato, onion, garlic, oil = (ingredients[n] for n in ("tomato", "onion", "garlic", "oil"))
        make_recipe("Big", lines=[(oil, 1), (garlic, 1), (onion, 1), (tomato, 1)])

        page = search_by_ingredients([tomato.id], match_percentage=25)

        missing = page.items[0].missing_ingredients
        assert [i.id for i in missing] == sorted([onion.id, garlic.id, oil.id])

    def test_unknown_supplied_ids_do_not_match(self, test_db, ingredients, make_recipe):
        make_recipe("Salsa", lines=[(ingredients["tomato"], 1)])

        page = search_by_ingredients([9999], match_percentage=1)

        assert page.total_count == 0

    def test_pagination_after_threshold(self, test_db, ingredients, make_recipe):
        tomato, garlic = ingredients["tomato"], ingredients["garlic"]
        for index in range(5):
            make_recipe(f"Tomato {index}", lines=[(tomato, 1)])
        make_recipe("Garlic only", lines=[(garlic, 1)])

        first = search_by_ingredients([tomato.id], criteria=ScopeCriteria(per_page=2))
        last = search_by_ingredients([tomato.id], criteria=ScopeCriteria(page=3, per_page=2))

        assert first.total_count == 5
        assert first.total_pages == 3
        assert len(first.items) == 2
        assert len(last.items) == 1

    def test_scope_criteria_applied(self, test_db, ingredients, category, make_recipe):
        tomato = ingredients["tomato"]
        make_recipe("Soup", lines=[(tomato, 1)], category_id=category.id)
        make_recipe("Salad", lines=[(tomato, 1)])
        make_recipe("Expensive Soup", lines=[(tomato, 10)], category_id=category.id)

        page = search_by_ingredients(
            [tomato.id], criteria=ScopeCriteria(category_id=category.id, max_cost=100)
        )

        assert [m.recipe.title for m in page.items] == ["Soup"]

    def test_to_dict(self, test_db, ingredients, make_recipe):
        tomato, onion = ingredients["tomato"], ingredients["onion"]
        make_recipe("Salsa", lines=[(tomato, 2), (onion, 1)])

        data = search_by_ingredients([tomato.id], match_percentage=50).to_dict()

        item = data["items"][0]
        assert item["match_percentage"] == "50.0"
        assert item["recipe"]["title"] == "Salsa"
        assert item["missing_ingredients"][0]["name"] == "Onion"
        assert data["total_pages"] == 1


class TestValidation:
    """Invalid requests are rejected before any query runs."""

    @pytest.mark.parametrize("ingredient_ids", [[], None, "1,2", [0], [1, "2"]])
    def test_bad_ingredient_ids(self, ingredient_ids):
        with pytest.raises(ValidationError) as exc_info:
            search_by_ingredients(ingredient_ids)
        assert "ingredient_ids" in exc_info.value.errors

    @pytest.mark.parametrize("threshold", [0, 101, 50.5])
    def test_bad_threshold(self, threshold):
        with pytest.raises(ValidationError) as exc_info:
            search_by_ingredients([1], match_percentage=threshold)
        assert "match_percentage" in exc_info.value.errors

    def test_bad_scope(self):
        with pytest.raises(ValidationError) as exc_info:
            search_by_ingredients([1], criteria=ScopeCriteria(per_page=200, difficulty="x"))
        assert set(exc_info.value.errors) == {"per_page", "difficulty"}

    def test_accepts_any_iterable(self, test_db, ingredients, make_recipe):
        tomato = ingredients["tomato"]
        make_recipe("Salsa", lines=[(tomato, 1)])

        page = search_by_ingredients({tomato.id}, match_percentage=100)

        assert page.total_count == 1
