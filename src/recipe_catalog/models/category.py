"""
Category model for recipe grouping.

Categories form a tree through parent_id (e.g., "Desserts" > "Cakes"). A
recipe belongs to at most one category; recipes_count is a cached count of
the recipes filed directly under a category, maintained by
recipe_catalog.services.aggregate_service.
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class Category(BaseModel):
    """
    Category model representing recipe grouping.

    Attributes:
        name: Category display name (e.g., "Soups")
        description: Optional description text
        position: Display ordering among siblings (default 0)
        parent_id: Parent category, None for a root category
        recipes_count: Cached number of recipes directly in this category
    """

    __tablename__ = "categories"

    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)

    # Cached aggregate
    recipes_count = Column(Integer, nullable=False, default=0)

    parent = relationship(
        "Category", remote_side="Category.id", back_populates="children", lazy="select"
    )
    children = relationship(
        "Category", back_populates="parent", order_by="Category.position", lazy="select"
    )
    recipes = relationship("Recipe", back_populates="category", lazy="select")

    __table_args__ = (
        CheckConstraint("recipes_count >= 0", name="ck_category_recipes_count_non_negative"),
        Index("idx_category_position", "position"),
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def __repr__(self) -> str:
        return f"Category(id={self.id}, name='{self.name}', parent_id={self.parent_id})"
