"""
Command-line utility for the Recipe Catalog.

Usage:
    recipe-catalog init-db
    recipe-catalog load-sample test_data/sample_catalog.json
    recipe-catalog recalculate

Sample data is loaded through the services, so every recipe's cached cost
and rating are maintained exactly as they are for any other write.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from recipe_catalog.services import (
    aggregate_service,
    category_service,
    ingredient_service,
    rating_service,
    recipe_service,
    user_service,
)
from recipe_catalog.services.database import initialize_app_database, session_scope
from recipe_catalog.services.exceptions import ServiceError
from recipe_catalog.utils.config import get_config

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="recipe-catalog",
        description="Manage the recipe catalog database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create tables in the configured database:
  recipe-catalog init-db

  # Load the bundled sample catalog:
  recipe-catalog load-sample test_data/sample_catalog.json

  # Re-derive every cached cost, rating and category recipe count:
  recipe-catalog recalculate
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables")

    load_parser = subparsers.add_parser("load-sample", help="Load a catalog from a JSON file")
    load_parser.add_argument("path", help="Path to the JSON catalog file")

    subparsers.add_parser(
        "recalculate", help="Re-derive cached costs, ratings and category recipe counts"
    )

    return parser.parse_args(argv)


def load_catalog(data: Dict) -> Dict[str, int]:
    """
    Load categories, ingredients, users, recipes and ratings in one unit of work.

    Categories reference their parent by name (parents listed first); recipes
    reference categories and ingredients by name; ratings reference recipes
    by title and users by email.

    Returns:
        Dictionary with the number of rows created per kind
    """
    counts = {"categories": 0, "ingredients": 0, "users": 0, "recipes": 0, "ratings": 0}

    with session_scope() as session:
        categories = {}
        for item in data.get("categories", []):
            category_data = {key: value for key, value in item.items() if key != "parent"}
            if item.get("parent"):
                category_data["parent_id"] = categories[item["parent"]]
            category = category_service.create_category(category_data, session=session)
            categories[category.name] = category.id
            counts["categories"] += 1

        ingredients = {}
        for item in data.get("ingredients", []):
            ingredient = ingredient_service.create_ingredient(item, session=session)
            ingredients[ingredient.name] = ingredient.id
            counts["ingredients"] += 1

        users = {}
        for item in data.get("users", []):
            user = user_service.create_user(item["name"], item["email"], session=session)
            users[user.email] = user.id
            counts["users"] += 1

        recipes = {}
        for item in data.get("recipes", []):
            recipe_data = {
                key: value
                for key, value in item.items()
                if key not in ("category", "ingredients")
            }
            if item.get("category"):
                recipe_data["category_id"] = categories[item["category"]]
            lines = [
                {
                    "ingredient_id": ingredients[line["ingredient"]],
                    "quantity": line["quantity"],
                    "unit": line["unit"],
                    "optional": line.get("optional", False),
                    "notes": line.get("notes"),
                }
                for line in item.get("ingredients", [])
            ]
            recipe = recipe_service.create_recipe(recipe_data, lines, session=session)
            recipes[recipe.title] = recipe.id
            counts["recipes"] += 1

        for item in data.get("ratings", []):
            rating_service.rate_recipe(
                recipes[item["recipe"]],
                users[item["user"].lower()],
                item["score"],
                item.get("review"),
                session=session,
            )
            counts["ratings"] += 1

    return counts


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point."""
    args = parse_args(argv)
    config = get_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "init-db":
            initialize_app_database()
            print(f"Database ready: {config.database_url}")

        elif args.command == "load-sample":
            path = Path(args.path)
            if not path.exists():
                print(f"ERROR: File not found: {path}", file=sys.stderr)
                return 1
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

            initialize_app_database()
            counts = load_catalog(data)
            print(
                "Loaded {categories} categories, {ingredients} ingredients, "
                "{users} users, {recipes} recipes, {ratings} ratings".format(**counts)
            )

        elif args.command == "recalculate":
            summary = aggregate_service.recalculate_all()
            print(
                "Recalculated {recipes} recipes: {costs_changed} costs changed, "
                "{ratings_changed} ratings changed; {categories} categories: "
                "{category_counts_changed} recipe counts changed".format(**summary)
            )

    except (ServiceError, KeyError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
