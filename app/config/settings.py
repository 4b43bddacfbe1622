"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management using Pydantic Settings.

A single cached Settings instance is shared by the whole application
through get_settings().

Features:
---------
- Environment variable loading with type validation
- .env file support for local development
- Computed properties for derived paths
- Scanner tuning (poll interval, camera indexes, OCR options)
- Metadata provider endpoints and timeouts

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        data_path: Directory holding the books JSON file (env DATA_PATH)
        books_filename: Name of the books JSON file inside data_path
        static_directory: Optional directory with a browser frontend
        cors_origins: Allowed CORS origins (JSON array string)
        scan_interval_seconds: Delay between recognition poll cycles
        scan_timeout_seconds: Upper bound for server-side camera scans
        camera_index: OpenCV device index for the rear/default camera
        front_camera_index: OpenCV device index for a user-facing camera
        binarize_threshold: Midpoint used by the OCR black/white pass
        tesseract_cmd: Explicit path to the tesseract binary
        ocr_language: Tesseract language code
        ocr_config: Extra tesseract command line options
        metadata_timeout_seconds: HTTP timeout for metadata providers
        open_library_url: Open Library base URL
        google_books_url: Google Books API base URL
        google_books_api_key: Optional Google Books API key

    Example:
        >>> settings = Settings()
        >>> settings.books_path
        PosixPath('data/books.json')
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Book Catalog API",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    # =========================================================================
    # STORAGE SETTINGS
    # =========================================================================
    data_path: str = Field(
        default="data",
        description="Directory holding the books JSON file"
    )

    books_filename: str = Field(
        default="books.json",
        min_length=1,
        description="Books JSON file name"
    )

    static_directory: str = Field(
        default="static",
        description="Directory with frontend assets (mounted when present)"
    )

    # =========================================================================
    # SCANNER SETTINGS
    # =========================================================================
    scan_interval_seconds: float = Field(
        default=1.0,
        ge=0.01,
        le=10.0,
        description="Delay between recognition poll cycles"
    )

    scan_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=600.0,
        description="Upper bound for a server-side camera scan"
    )

    camera_index: int = Field(
        default=0,
        ge=0,
        description="OpenCV device index for the environment-facing camera"
    )

    front_camera_index: Optional[int] = Field(
        default=None,
        ge=0,
        description="OpenCV device index for the user-facing camera"
    )

    binarize_threshold: int = Field(
        default=128,
        ge=1,
        le=255,
        description="Black/white threshold for OCR preprocessing"
    )

    tesseract_cmd: Optional[str] = Field(
        default=None,
        description="Path to the tesseract binary (PATH lookup if unset)"
    )

    ocr_language: str = Field(
        default="eng",
        description="Tesseract language code"
    )

    ocr_config: str = Field(
        default="--psm 6",
        description="Extra tesseract options"
    )

    # =========================================================================
    # METADATA PROVIDER SETTINGS
    # =========================================================================
    metadata_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60.0,
        description="HTTP timeout for metadata lookups"
    )

    open_library_url: str = Field(
        default="https://openlibrary.org",
        description="Open Library base URL"
    )

    google_books_url: str = Field(
        default="https://www.googleapis.com/books/v1",
        description="Google Books API base URL"
    )

    google_books_api_key: Optional[str] = Field(
        default=None,
        description="Optional Google Books API key"
    )

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Unknown values fall back to 'development' with a warning.
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("open_library_url", "google_books_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Provider URLs are joined with paths, so drop trailing slashes."""
        return value.rstrip("/")

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def docs_enabled(self) -> bool:
        """Interactive API docs are served outside production."""
        return not self.is_production

    @property
    def data_dir(self) -> Path:
        """Data directory as Path object."""
        return Path(self.data_path)

    @property
    def books_path(self) -> Path:
        """Full path of the books JSON file."""
        return self.data_dir / self.books_filename

    @property
    def static_path(self) -> Path:
        """Frontend assets directory as Path object."""
        return Path(self.static_directory)

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================
    def ensure_directories(self) -> None:
        """Create the data directory if it does not exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Data directory verified: {self.data_dir}")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"data_path={self.data_path!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    Uses lru_cache so only one Settings instance is created for the
    application lifecycle.

    Returns:
        Global Settings instance
    """
    settings = Settings()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
