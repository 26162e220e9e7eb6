"""Pytest configuration and fixtures for service layer tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from recipe_catalog.models.base import Base


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Points the services' session factory at it
    4. Drops all tables and restores the factory after the test
    """
    engine = create_engine("sqlite:///:memory:", echo=False)

    import recipe_catalog.models  # noqa: F401

    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    import recipe_catalog.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session_factory


@pytest.fixture(scope="function")
def ingredients(test_db):
    """Provide a small priced ingredient set keyed by lower-case name.

    tomato 50, onion 30, garlic 10, basil 8, oil 25 (cents per unit)
    """
    from recipe_catalog.services import ingredient_service

    prices = {"tomato": 50, "onion": 30, "garlic": 10, "basil": 8, "oil": 25}
    return {
        name: ingredient_service.create_ingredient(
            {"name": name.title(), "unit_price_cents": price, "category": "vegetables"}
        )
        for name, price in prices.items()
    }


@pytest.fixture(scope="function")
def category(test_db):
    """Provide a sample category."""
    from recipe_catalog.services import category_service

    return category_service.create_category({"name": "Soups"})


@pytest.fixture(scope="function")
def user(test_db):
    """Provide a sample user."""
    from recipe_catalog.services import user_service

    return user_service.create_user("Alex Morgan", "alex@example.com")


@pytest.fixture(scope="function")
def make_recipe(test_db):
    """Provide a factory creating recipes through recipe_service.

    Lines are given as (ingredient, quantity) or (ingredient, quantity, optional).
    """
    from recipe_catalog.services import recipe_service

    def _make(title="Test Recipe", lines=(), **fields):
        recipe_data = {
            "title": title,
            "instructions": "Mix and cook.",
            "prep_time_min": 10,
        }
        recipe_data.update(fields)
        ingredients_data = [
            {
                "ingredient_id": line[0].id,
                "quantity": line[1],
                "unit": "pcs",
                "optional": line[2] if len(line) > 2 else False,
            }
            for line in lines
        ]
        return recipe_service.create_recipe(recipe_data, ingredients_data)

    return _make
