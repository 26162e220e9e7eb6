"""Tests for service logging utilities and the log records services emit."""

import logging

from recipe_catalog.services import recipe_service
from recipe_catalog.services.logging_utils import get_service_logger, log_operation


class TestGetServiceLogger:
    def test_prefixes_module_name(self):
        logger = get_service_logger("recipe_catalog.services.budget_match_service")
        assert logger.name == "recipe_catalog.services.budget_match_service"

    def test_bare_name(self):
        assert get_service_logger("cost_model").name == "recipe_catalog.services.cost_model"


class TestLogOperation:
    def test_message_and_context(self, caplog):
        logger = get_service_logger("example")

        with caplog.at_level(logging.INFO, logger=logger.name):
            log_operation(logger, operation="recalculate_cost", outcome="success", recipe_id=45)

        record = caplog.records[-1]
        assert record.getMessage() == "recalculate_cost: success"
        assert record.operation == "recalculate_cost"
        assert record.outcome == "success"
        assert record.recipe_id == 45

    def test_level(self, caplog):
        logger = get_service_logger("example")

        with caplog.at_level(logging.DEBUG, logger=logger.name):
            log_operation(logger, operation="search", outcome="success", level=logging.DEBUG)

        assert caplog.records[-1].levelno == logging.DEBUG


class TestServiceLogs:
    def test_create_recipe_logged(self, test_db, ingredients, caplog):
        with caplog.at_level(logging.INFO, logger="recipe_catalog.services.recipe_service"):
            recipe = recipe_service.create_recipe(
                {"title": "Salsa", "instructions": "Chop.", "prep_time_min": 5},
                [{"ingredient_id": ingredients["tomato"].id, "quantity": 2, "unit": "pcs"}],
            )

        record = [r for r in caplog.records if r.getMessage() == "create_recipe: success"][0]
        assert record.recipe_id == recipe.id
        assert record.est_cost_cents == 100
        assert record.line_count == 1
