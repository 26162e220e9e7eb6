"""
Ingredient model.

An ingredient carries the unit price used by the cost model. The price is
read at cost-computation time; recipes keep no snapshot of it.
"""

from sqlalchemy import Column, String, Integer, Index, CheckConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class Ingredient(BaseModel):
    """
    Ingredient model.

    Attributes:
        name: Unique ingredient name (e.g., "Tomato")
        name_uk: Optional Ukrainian name, matched by ingredient search
        default_unit: Unit the ingredient is usually measured in
        category: Optional grouping (e.g., "vegetables")
        unit_price_cents: Price per default unit in minor currency units
    """

    __tablename__ = "ingredients"

    name = Column(String(100), nullable=False, unique=True)
    name_uk = Column(String(100), nullable=True, index=True)
    default_unit = Column(String(20), nullable=False, default="pcs")
    category = Column(String(50), nullable=True, index=True)
    unit_price_cents = Column(Integer, nullable=False, default=0)

    recipe_ingredients = relationship(
        "RecipeIngredient", back_populates="ingredient", lazy="select"
    )

    __table_args__ = (
        CheckConstraint("unit_price_cents >= 0", name="ck_ingredient_price_non_negative"),
        Index("idx_ingredient_name", "name"),
    )

    def __repr__(self) -> str:
        return (
            f"Ingredient(id={self.id}, name='{self.name}', "
            f"unit_price_cents={self.unit_price_cents})"
        )
