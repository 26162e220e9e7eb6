"""
User Service - minimal user records that own ratings.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.models import User
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.exceptions import (
    DatabaseError,
    ServiceError,
    UserNotFound,
    ValidationError,
)
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.validators import raise_if_errors, validate_user_data

logger = get_service_logger(__name__)


def create_user(name: str, email: str, session: Optional[Session] = None) -> User:
    """
    Create a user. The email is stored lower-case and must be unique.

    Raises:
        ValidationError: If name or email is invalid, or the email is taken
        DatabaseError: If database operation fails
    """
    raise_if_errors(validate_user_data(name, email))
    email = email.strip().lower()

    try:
        with scope_for(session) as sess:
            if sess.query(User.id).filter(User.email == email).first() is not None:
                raise ValidationError({"email": ["has already been taken"]})

            user = User(name=name.strip(), email=email)
            sess.add(user)
            sess.flush()

            log_operation(logger, operation="create_user", outcome="success", user_id=user.id)
            return user

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create user", e)


def get_user(user_id: int, session: Optional[Session] = None) -> User:
    """
    Retrieve a user by ID.

    Raises:
        UserNotFound: If user doesn't exist
    """
    try:
        with scope_for(session) as sess:
            user = sess.get(User, user_id)
            if user is None:
                raise UserNotFound(user_id)
            return user

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to retrieve user {user_id}", e)
