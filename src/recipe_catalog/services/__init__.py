"""
Service layer for the Recipe Catalog.

Services own every mutation of recipes, ingredient lines and ratings, and
re-derive the cached recipe aggregates inside the same unit of work.
Search services are read-only.
"""
