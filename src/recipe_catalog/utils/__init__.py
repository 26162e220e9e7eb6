"""Utility modules: configuration, constants, and input validation."""
