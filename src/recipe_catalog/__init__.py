"""
Recipe Catalog - recipe matching and aggregate-consistency engine.

Answers three recurring questions over a recipe collection:
- which recipes match a set of criteria
- which recipes can be made with the ingredients on hand
- which recipes fit a budget
"""

__version__ = "0.1.0"
