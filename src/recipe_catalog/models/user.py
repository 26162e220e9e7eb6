"""
User model.

Only the fields needed to own ratings. Credentials and sessions are handled
outside this package.
"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    """
    User model.

    Attributes:
        name: Display name
        email: Unique, stored lower-case
    """

    __tablename__ = "users"

    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)

    ratings = relationship(
        "Rating", back_populates="user", cascade="all, delete-orphan", lazy="select"
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, email='{self.email}')"
