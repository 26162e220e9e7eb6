"""Tests for rating_service.

Tests cover:
- Upsert semantics of rate_recipe() with tagged results
- Rating aggregates after create, update and delete
- Deleting the last rating resetting the recipe to 0.0 / 0
- list_ratings() ordering and pagination
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from recipe_catalog.models import Rating, RatingOutcome
from recipe_catalog.services import rating_service, recipe_service, user_service
from recipe_catalog.services.exceptions import (
    RatingNotFound,
    RecipeNotFound,
    UserNotFound,
    ValidationError,
)


@pytest.fixture
def users(test_db):
    return [
        user_service.create_user(f"User {index}", f"user{index}@example.com")
        for index in range(1, 4)
    ]


class TestRateRecipe:
    """Tests for rate_recipe()."""

    def test_first_rating_created(self, test_db, make_recipe, user):
        recipe = make_recipe()

        result = rating_service.rate_recipe(recipe.id, user.id, 5, "Lovely")

        assert result.outcome is RatingOutcome.CREATED
        assert result.created is True
        assert result.rating.score == 5
        assert result.rating.review == "Lovely"

        stored = recipe_service.get_recipe(recipe.id)
        assert stored.avg_rating == Decimal("5.0")
        assert stored.ratings_count == 1

    def test_second_rating_by_same_user_updates(self, test_db, make_recipe, user):
        recipe = make_recipe()
        first = rating_service.rate_recipe(recipe.id, user.id, 2)

        second = rating_service.rate_recipe(recipe.id, user.id, 4, "Grew on me")

        assert second.outcome is RatingOutcome.UPDATED
        assert second.created is False
        assert second.rating.id == first.rating.id
        assert test_db().query(Rating).count() == 1

        stored = recipe_service.get_recipe(recipe.id)
        assert stored.avg_rating == Decimal("4.0")
        assert stored.ratings_count == 1

    def test_average_rounds_to_one_decimal(self, test_db, make_recipe, users):
        recipe = make_recipe()
        for user, score in zip(users, (5, 4, 4)):
            rating_service.rate_recipe(recipe.id, user.id, score)

        stored = recipe_service.get_recipe(recipe.id)
        assert stored.avg_rating == Decimal("4.3")
        assert stored.ratings_count == 3

    def test_logs_outcome(self, test_db, make_recipe, user, caplog):
        recipe = make_recipe()

        with caplog.at_level(logging.INFO, logger="recipe_catalog.services.rating_service"):
            rating_service.rate_recipe(recipe.id, user.id, 3)
            rating_service.rate_recipe(recipe.id, user.id, 4)

        messages = [record.getMessage() for record in caplog.records]
        assert "rate_recipe: created" in messages
        assert "rate_recipe: updated" in messages

    @pytest.mark.parametrize("score", [0, 6, 3.5, "5", None, True])
    def test_invalid_score(self, test_db, score):
        with pytest.raises(ValidationError) as exc_info:
            rating_service.rate_recipe(1, 1, score)
        assert "score" in exc_info.value.errors

    def test_unknown_recipe(self, test_db, user):
        with pytest.raises(RecipeNotFound):
            rating_service.rate_recipe(999, user.id, 4)

    def test_unknown_user(self, test_db, make_recipe):
        recipe = make_recipe()
        with pytest.raises(UserNotFound) as exc_info:
            rating_service.rate_recipe(recipe.id, 999, 4)
        assert exc_info.value.user_id == 999


class TestDeleteRating:
    """Tests for delete_rating()."""

    def test_delete_last_rating_resets_aggregate(self, test_db, make_recipe, user):
        recipe = make_recipe()
        rating_service.rate_recipe(recipe.id, user.id, 5)
        assert recipe_service.get_recipe(recipe.id).avg_rating == Decimal("5.0")

        assert rating_service.delete_rating(recipe.id, user.id) is True

        stored = recipe_service.get_recipe(recipe.id)
        assert stored.avg_rating == Decimal("0.0")
        assert stored.ratings_count == 0

    def test_delete_one_of_many(self, test_db, make_recipe, users):
        recipe = make_recipe()
        for user, score in zip(users, (5, 3, 1)):
            rating_service.rate_recipe(recipe.id, user.id, score)

        rating_service.delete_rating(recipe.id, users[2].id)

        stored = recipe_service.get_recipe(recipe.id)
        assert stored.avg_rating == Decimal("4.0")
        assert stored.ratings_count == 2

    def test_missing_rating(self, test_db, make_recipe, user):
        recipe = make_recipe()
        with pytest.raises(RatingNotFound) as exc_info:
            rating_service.delete_rating(recipe.id, user.id)
        assert exc_info.value.recipe_id == recipe.id
        assert exc_info.value.user_id == user.id

    def test_unknown_recipe(self, test_db, user):
        with pytest.raises(RecipeNotFound):
            rating_service.delete_rating(999, user.id)


class TestListRatings:
    """Tests for list_ratings()."""

    def test_newest_first(self, test_db, make_recipe, users):
        recipe = make_recipe()
        ids = [rating_service.rate_recipe(recipe.id, u.id, 4).rating.id for u in users]

        session = test_db()
        base = datetime(2024, 1, 1)
        for offset, rating_id in enumerate(ids):
            session.get(Rating, rating_id).created_at = base + timedelta(days=offset)
        session.commit()

        page = rating_service.list_ratings(recipe.id)

        assert [rating.id for rating in page.items] == list(reversed(ids))
        assert page.items[0].user.email == "user3@example.com"

    def test_same_timestamp_tie_break(self, test_db, make_recipe, users):
        recipe = make_recipe()
        ids = [rating_service.rate_recipe(recipe.id, u.id, 4).rating.id for u in users]

        session = test_db()
        session.query(Rating).update({"created_at": datetime(2024, 1, 1)})
        session.commit()

        page = rating_service.list_ratings(recipe.id)

        assert [rating.id for rating in page.items] == sorted(ids, reverse=True)

    def test_pagination(self, test_db, make_recipe, users):
        recipe = make_recipe()
        for user in users:
            rating_service.rate_recipe(recipe.id, user.id, 3)

        first = rating_service.list_ratings(recipe.id, page=1, per_page=2)
        second = rating_service.list_ratings(recipe.id, page=2, per_page=2)

        assert first.total_count == 3
        assert first.total_pages == 2
        assert len(first.items) == 2
        assert len(second.items) == 1

    def test_invalid_page(self, test_db):
        with pytest.raises(ValidationError):
            rating_service.list_ratings(1, per_page=101)

    def test_unknown_recipe(self, test_db):
        with pytest.raises(RecipeNotFound):
            rating_service.list_ratings(999)
