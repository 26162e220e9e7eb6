"""
Rating Service - one rating per user per recipe.

rate_recipe() is an explicit two-step upsert: look up the (recipe, user)
pair, update it in place when present, insert otherwise. The result is
tagged with RatingOutcome so callers know which branch ran.

Every mutation runs aggregate_service.apply_rating_rule() in the same unit
of work, so the recipe's cached average and count never lag the rating rows.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.models import Rating, RatingOutcome, Recipe, User
from recipe_catalog.services import aggregate_service, recipe_repository
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.dto import PageResult, PaginationParams, RatingResult
from recipe_catalog.services.exceptions import (
    DatabaseError,
    RatingNotFound,
    RecipeNotFound,
    ServiceError,
    UserNotFound,
)
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.constants import DEFAULT_PAGE, DEFAULT_PER_PAGE
from recipe_catalog.utils.validators import (
    raise_if_errors,
    validate_pagination,
    validate_rating_data,
)

logger = get_service_logger(__name__)


def _find_rating(session: Session, recipe_id: int, user_id: int) -> Optional[Rating]:
    return (
        session.query(Rating)
        .filter(Rating.recipe_id == recipe_id, Rating.user_id == user_id)
        .first()
    )


def rate_recipe(
    recipe_id: int,
    user_id: int,
    score: int,
    review: Optional[str] = None,
    session: Optional[Session] = None,
) -> RatingResult:
    """
    Create or update a user's rating of a recipe.

    Args:
        recipe_id: Recipe being rated
        user_id: User giving the rating
        score: Integer score, 1-5
        review: Optional review text (replaces any previous review)
        session: Optional database session

    Returns:
        RatingResult with the stored rating and CREATED or UPDATED

    Raises:
        ValidationError: If score or review is invalid
        RecipeNotFound: If recipe doesn't exist
        UserNotFound: If user doesn't exist
        AggregateConsistencyError: If the rating recompute fails
        DatabaseError: If database operation fails
    """
    raise_if_errors(validate_rating_data(score, review))

    try:
        with scope_for(session) as sess:
            recipe = recipe_repository.get_recipe_for_update(sess, recipe_id)
            if recipe is None:
                raise RecipeNotFound(recipe_id)
            if sess.get(User, user_id) is None:
                raise UserNotFound(user_id)

            rating = _find_rating(sess, recipe_id, user_id)
            if rating is not None:
                rating.score = score
                rating.review = review
                outcome = RatingOutcome.UPDATED
            else:
                rating = Rating(recipe_id=recipe_id, user_id=user_id, score=score, review=review)
                sess.add(rating)
                outcome = RatingOutcome.CREATED

            aggregate_service.apply_rating_rule(sess, recipe)
            sess.refresh(rating)

            log_operation(
                logger,
                operation="rate_recipe",
                outcome=outcome.value,
                recipe_id=recipe_id,
                user_id=user_id,
                score=score,
                avg_rating=str(recipe.avg_rating),
                ratings_count=recipe.ratings_count,
            )
            return RatingResult(rating=rating, outcome=outcome)

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to rate recipe {recipe_id}", e)


def delete_rating(recipe_id: int, user_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete a user's rating of a recipe.

    Deleting the last rating leaves the recipe at avg_rating 0.0 with
    ratings_count 0.

    Raises:
        RecipeNotFound: If recipe doesn't exist
        RatingNotFound: If the user has no rating for the recipe
        AggregateConsistencyError: If the rating recompute fails
        DatabaseError: If database operation fails
    """
    try:
        with scope_for(session) as sess:
            recipe = recipe_repository.get_recipe_for_update(sess, recipe_id)
            if recipe is None:
                raise RecipeNotFound(recipe_id)

            rating = _find_rating(sess, recipe_id, user_id)
            if rating is None:
                raise RatingNotFound(recipe_id, user_id)

            sess.delete(rating)
            aggregate_service.apply_rating_rule(sess, recipe)

            log_operation(
                logger,
                operation="delete_rating",
                outcome="success",
                recipe_id=recipe_id,
                user_id=user_id,
                ratings_count=recipe.ratings_count,
            )
            return True

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete rating for recipe {recipe_id}", e)


def list_ratings(
    recipe_id: int,
    page: int = DEFAULT_PAGE,
    per_page: int = DEFAULT_PER_PAGE,
    session: Optional[Session] = None,
) -> PageResult[Rating]:
    """
    List a recipe's ratings, newest first.

    Args:
        recipe_id: Recipe ID
        page: Page number (>= 1)
        per_page: Page size (1-100)
        session: Optional database session

    Returns:
        PageResult of Rating ordered by created_at desc, then id desc

    Raises:
        ValidationError: If pagination is out of range
        RecipeNotFound: If recipe doesn't exist
    """
    raise_if_errors(validate_pagination(page, per_page))
    pagination = PaginationParams(page=page, per_page=per_page)

    try:
        with scope_for(session) as sess:
            if sess.get(Recipe, recipe_id) is None:
                raise RecipeNotFound(recipe_id)

            query = sess.query(Rating).filter(Rating.recipe_id == recipe_id)
            total_count = query.count()
            items = (
                query.order_by(Rating.created_at.desc(), Rating.id.desc())
                .offset(pagination.offset())
                .limit(pagination.per_page)
                .all()
            )

            return PageResult(
                items=items,
                page=pagination.page,
                per_page=pagination.per_page,
                total_count=total_count,
            )

    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to list ratings for recipe {recipe_id}", e)
