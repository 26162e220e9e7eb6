"""
Catalog Search Service - multi-criteria recipe search.

search() runs the whole pipeline in the database:
validate -> filter -> count -> sort -> offset/limit -> PageResult.

Searches never mutate and take no locks; they read the cached cost and rating
columns as last committed.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from recipe_catalog.models import Recipe
from recipe_catalog.services import recipe_repository
from recipe_catalog.services.database import scope_for
from recipe_catalog.services.dto import PageResult, SearchCriteria
from recipe_catalog.services.exceptions import DatabaseError, ServiceError
from recipe_catalog.services.logging_utils import get_service_logger, log_operation
from recipe_catalog.utils.validators import raise_if_errors, validate_search_criteria

logger = get_service_logger(__name__)


def search(
    criteria: Optional[SearchCriteria] = None, session: Optional[Session] = None
) -> PageResult[Recipe]:
    """
    Search recipes by any combination of catalog criteria.

    Text matches title or description case-insensitively as a substring.
    All supplied criteria are combined with AND. Results are ordered by the
    sort key (default rating, descending) with ascending id as tie-break.

    Args:
        criteria: SearchCriteria (defaults apply when None)
        session: Optional database session

    Returns:
        PageResult of Recipe; total_count covers the filtered set

    Raises:
        ValidationError: For an unknown sort key, direction or difficulty,
            or an out-of-range bound or page size (before any query runs)
        DatabaseError: If database operation fails

    Example:
        >>> page = search(SearchCriteria(query="soup", max_cost=1500, sort="cost", order="asc"))
        >>> [recipe.title for recipe in page.items]
    """
    criteria = criteria or SearchCriteria()
    raise_if_errors(validate_search_criteria(criteria))
    pagination = criteria.pagination()

    try:
        with scope_for(session) as sess:
            query = recipe_repository.build_recipe_query(sess, criteria)
            total_count = query.count()

            items = (
                recipe_repository.apply_recipe_sort(query, criteria.sort, criteria.order)
                .offset(pagination.offset())
                .limit(pagination.per_page)
                .all()
            )

            log_operation(
                logger,
                operation="search",
                outcome="success",
                level=logging.DEBUG,
                sort=criteria.sort,
                order=criteria.order,
                page=pagination.page,
                total_count=total_count,
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
        raise DatabaseError("Failed to search recipes", e)
