"""
Recipe models.

This module contains:
- Recipe: Main recipe model with metadata and cached aggregates
- RecipeIngredient: Junction table linking recipes to ingredients

The cached aggregates (est_cost_cents, avg_rating, ratings_count) are never
written here. They are re-derived from detail rows by
recipe_catalog.services.aggregate_service inside the same unit of work as
the change that invalidated them.
"""

from decimal import Decimal

from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    Numeric,
    Boolean,
    Enum,
    ForeignKey,
    Index,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import Difficulty


class Recipe(BaseModel):
    """
    Recipe model.

    Attributes:
        title: Recipe title (required)
        description: Short description
        instructions: Preparation steps (required)
        prep_time_min: Preparation time in minutes
        cook_time_min: Cooking time in minutes
        servings: Number of servings the ingredient list yields
        difficulty: Difficulty level
        category_id: Optional foreign key to Category
        est_cost_cents: Cached total ingredient cost, minor currency units
        avg_rating: Cached mean rating score, one decimal
        ratings_count: Cached number of ratings
    """

    __tablename__ = "recipes"

    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=False)

    prep_time_min = Column(Integer, nullable=False)
    cook_time_min = Column(Integer, nullable=False, default=0)
    servings = Column(Integer, nullable=False, default=4)
    difficulty = Column(
        Enum(Difficulty, values_callable=lambda enum: [member.value for member in enum]),
        nullable=False,
        default=Difficulty.EASY,
    )

    category_id = Column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )

    # Cached aggregates
    est_cost_cents = Column(Integer, nullable=False, default=0)
    avg_rating = Column(Numeric(3, 1), nullable=False, default=Decimal("0.0"))
    ratings_count = Column(Integer, nullable=False, default=0)

    category = relationship("Category", back_populates="recipes", lazy="joined")
    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.ingredient_id",
        lazy="selectin",
    )
    ratings = relationship(
        "Rating",
        back_populates="recipe",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        CheckConstraint("servings > 0", name="ck_recipe_servings_positive"),
        CheckConstraint("est_cost_cents >= 0", name="ck_recipe_cost_non_negative"),
        Index("idx_recipe_category", "category_id"),
        Index("idx_recipe_difficulty", "difficulty"),
        Index("idx_recipe_cost", "est_cost_cents"),
        Index("idx_recipe_rating", "avg_rating"),
    )

    @property
    def total_time_min(self) -> int:
        """Preparation plus cooking time in minutes."""
        return (self.prep_time_min or 0) + (self.cook_time_min or 0)

    def __repr__(self) -> str:
        return f"Recipe(id={self.id}, title='{self.title}')"

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert recipe to dictionary.

        Args:
            include_relationships: If True, include ingredient lines

        Returns:
            Dictionary representation with derived fields
        """
        result = super().to_dict(include_relationships=False)
        result["difficulty"] = self.difficulty.value if self.difficulty else None
        result["total_time_min"] = self.total_time_min

        if include_relationships:
            result["category"] = self.category.to_dict() if self.category else None
            result["ingredients"] = [line.to_dict() for line in self.recipe_ingredients]

        return result


class RecipeIngredient(BaseModel):
    """
    Junction table linking recipes to ingredients with quantities.

    Attributes:
        recipe_id: Foreign key to Recipe
        ingredient_id: Foreign key to Ingredient
        quantity: Amount needed, in multiples of the ingredient's priced unit
        unit: Unit of measurement as written in the recipe
        optional: Whether the recipe can be made without this ingredient
        notes: Optional notes (e.g., "finely chopped")
    """

    __tablename__ = "recipe_ingredients"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="RESTRICT"), nullable=False
    )

    quantity = Column(Numeric(10, 3), nullable=False)
    unit = Column(String(20), nullable=False)
    optional = Column(Boolean, nullable=False, default=False)
    notes = Column(String(255), nullable=True)

    recipe = relationship("Recipe", back_populates="recipe_ingredients")
    ingredient = relationship("Ingredient", back_populates="recipe_ingredients", lazy="joined")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_recipe_ingredient_quantity_positive"),
        UniqueConstraint(
            "recipe_id", "ingredient_id", name="uq_recipe_ingredient_recipe_ingredient"
        ),
        Index("idx_recipe_ingredient_recipe", "recipe_id"),
        Index("idx_recipe_ingredient_ingredient", "ingredient_id"),
    )

    def __repr__(self) -> str:
        return (
            f"RecipeIngredient(recipe_id={self.recipe_id}, "
            f"ingredient_id={self.ingredient_id}, "
            f"quantity={self.quantity}, unit='{self.unit}')"
        )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert recipe ingredient to dictionary.

        Returns:
            Dictionary representation including the ingredient name and line cost
        """
        from recipe_catalog.services.cost_model import line_cost

        result = super().to_dict(include_relationships)
        result["ingredient_name"] = self.ingredient.name if self.ingredient else None
        result["cost_cents"] = line_cost(self)
        return result
