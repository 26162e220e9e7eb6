"""
Rating model.

A user holds at most one rating per recipe. Rating rows feed the recipe's
cached average rating and rating count.
"""

from sqlalchemy import (
    Column,
    Integer,
    Text,
    ForeignKey,
    Index,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class Rating(BaseModel):
    """
    Rating of a recipe by a user.

    Attributes:
        recipe_id: Foreign key to Recipe
        user_id: Foreign key to User
        score: Integer score, 1-5
        review: Optional free-text review
    """

    __tablename__ = "ratings"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    score = Column(Integer, nullable=False)
    review = Column(Text, nullable=True)

    recipe = relationship("Recipe", back_populates="ratings")
    user = relationship("User", back_populates="ratings", lazy="joined")

    __table_args__ = (
        CheckConstraint("score >= 1 AND score <= 5", name="ck_rating_score_range"),
        UniqueConstraint("recipe_id", "user_id", name="uq_rating_recipe_user"),
        Index("idx_rating_recipe", "recipe_id"),
        Index("idx_rating_user", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"Rating(recipe_id={self.recipe_id}, user_id={self.user_id}, "
            f"score={self.score})"
        )
