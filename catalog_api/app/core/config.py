"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from environment
variables.  Defaults are provided for all fields so the API starts with
an in-memory document store and no extra setup.  In a production
deployment point ``DATABASE_URL`` at a MongoDB instance and override
``SECRET_KEY``.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Catalog API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 30)))

    # Connection string of the document store.  ``memory://`` keeps all
    # collections in process (development and tests); anything else is
    # handed to the MongoDB driver.
    database_url: str = os.getenv("DATABASE_URL", "memory://")
    database_name: str = os.getenv("DATABASE_NAME", "catalog")

    # Upper bound in seconds for every single store call.
    store_timeout: float = float(os.getenv("STORE_TIMEOUT", "5"))

    # How many times a read-check-write cycle is replayed after a
    # concurrent modification of the same document.
    write_retries: int = int(os.getenv("WRITE_RETRIES", "3"))

    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before importing this module.
settings = Settings()
