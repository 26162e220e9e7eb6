"""
Configuration management for the Recipe Catalog.

This module handles:
- Database location (file path or explicit URL)
- Environment-specific configuration (development vs. production)
- Logging level
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import APP_NAME, APP_VERSION, DATABASE_FILENAME

ENV_VARIABLE = "RECIPE_CATALOG_ENV"
DATABASE_URL_VARIABLE = "RECIPE_CATALOG_DATABASE_URL"
LOG_LEVEL_VARIABLE = "RECIPE_CATALOG_LOG_LEVEL"


class Config:
    """
    Application configuration manager.

    Resolves the database location and logging level for an environment.
    An explicit RECIPE_CATALOG_DATABASE_URL always wins over the
    environment-derived SQLite file.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        self._app_name = APP_NAME
        self._app_version = APP_VERSION
        self._database_url_override = os.environ.get(DATABASE_URL_VARIABLE) or None
        self._log_level = os.environ.get(LOG_LEVEL_VARIABLE, "INFO").upper()

        if environment == "development":
            self._database_dir = self._get_project_data_dir()
        else:
            self._database_dir = self._get_user_data_dir()

        self._database_path = self._database_dir / DATABASE_FILENAME

    def _get_project_data_dir(self) -> Path:
        """Project data/ directory, used in development."""
        project_root = Path(__file__).parent.parent.parent.parent
        return project_root / "data"

    def _get_user_data_dir(self) -> Path:
        """Per-user data directory, used in production."""
        return Path.home() / ".recipe_catalog"

    def ensure_directories(self) -> None:
        """Create the database directory if a file database is in use."""
        if self._database_url_override is None:
            self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def app_name(self) -> str:
        return self._app_name

    @property
    def app_version(self) -> str:
        return self._app_version

    @property
    def database_path(self) -> Path:
        """Full path to the SQLite database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        Returns:
            The override URL when set, otherwise a SQLite URL for database_path
        """
        if self._database_url_override:
            return self._database_url_override
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def log_level(self) -> int:
        """Numeric logging level, falling back to INFO for unknown names."""
        level = logging.getLevelName(self._log_level)
        if not isinstance(level, int):
            logging.getLogger(__name__).warning(
                f"Invalid {LOG_LEVEL_VARIABLE} value '{self._log_level}', using INFO"
            )
            return logging.INFO
        return level

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def database_exists(self) -> bool:
        """
        Check if the database file exists.

        Always True when an explicit database URL is configured, since the
        server owns that database's lifecycle.
        """
        if self._database_url_override:
            return True
        return self._database_path.exists()

    def __repr__(self) -> str:
        return f"Config(environment='{self.environment}', database_url='{self.database_url}')"


_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument - this prevents switching databases
    mid-session.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    RECIPE_CATALOG_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_VARIABLE, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger = logging.getLogger(__name__)
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config() -> None:
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None


def get_database_url() -> str:
    """Get the configured database URL."""
    return get_config().database_url
