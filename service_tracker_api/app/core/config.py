"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API can start with a local SQLite record store and a development
identity secret.  In a production deployment you should override
these via environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Service Tracker API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    # Shared secret used to verify tokens issued by the identity
    # provider.  Tokens carry the user id, display names and an opaque
    # role claim.
    identity_secret: str = os.getenv("IDENTITY_SECRET", "change_me")
    token_expire_minutes: int = int(os.getenv("TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Role claim value that grants administrator capabilities.  The
    # claim is only ever compared for equality against this string.
    admin_role: str = os.getenv("ADMIN_ROLE", "admin")

    # Which record store backs the ``services`` table: ``sqlite`` for the
    # embedded database or ``rest`` for a hosted PostgREST‑style data API.
    record_store: str = os.getenv("RECORD_STORE", "sqlite")

    # Path to the SQLite database file.  Relative paths are resolved
    # against the project root by the ``db`` module.  The audit log is
    # always kept here, whichever record store is selected.
    database_url: str = os.getenv("DATABASE_URL", "service_tracker.db")

    # Hosted data API settings, used when ``record_store`` is ``rest``.
    remote_store_url: str = os.getenv("REMOTE_STORE_URL", "")
    remote_store_key: str = os.getenv("REMOTE_STORE_KEY", "")
    remote_store_timeout: float = float(os.getenv("REMOTE_STORE_TIMEOUT", "10"))

    # Quiescence window applied to duplicate title lookups.
    duplicate_debounce_ms: int = int(os.getenv("DUPLICATE_DEBOUNCE_MS", "500"))
    # Most recently active users whose duplicate detectors are kept.
    duplicate_detector_limit: int = int(os.getenv("DUPLICATE_DETECTOR_LIMIT", "1024"))

    # Calendar used for monthly grouping and the current‑month delete window.
    local_timezone: str = os.getenv("LOCAL_TIMEZONE", "America/Sao_Paulo")

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Because the dataclass
# computes values at class creation time, environment variables should
# be set before importing this module.
settings = Settings()
