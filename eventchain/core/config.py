"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Backend-specific requirements (e.g. DATABASE_URL for
postgres) are validated at load time.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings have defaults; validate_backend_and_workers enforces the
    combinations that only make sense together.
    """

    # App
    app_name: str = "eventchain"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database: "postgres" (SQLAlchemy + Alembic) or "memory" (in-process, dev/tests)
    database_backend: str = "memory"
    database_url: str = ""
    database_echo: bool = False
    # Optional pool/driver overrides (None = use defaults in database.py)
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Request scoping: the excluded auth layer forwards family/user in headers.
    family_header_name: str = "X-Family-ID"
    user_header_name: str = "X-User-ID"
    request_id_header: str = "X-Request-ID"
    correlation_id_header: str = "X-Correlation-ID"

    # Chain execution worker pool
    execution_worker_count: int = Field(default=4, ge=1)
    execution_queue_size: int = Field(default=1000, ge=1)
    # Per-step action timeout; a stuck action fails its step after this long.
    step_timeout_seconds: float = Field(default=30.0, gt=0)
    # Seconds to wait for in-flight runs on shutdown before cancelling them.
    worker_shutdown_grace_seconds: float = Field(default=10.0, ge=0)
    recovery_on_startup: bool = True
    recovery_batch_size: int = Field(default=500, ge=1)

    # Business modules contributing triggers/actions (comma-separated import paths).
    # Each module must expose a `module` attribute (see application.services.registry).
    chain_modules: str = ""

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_jaeger_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def chain_module_paths(self) -> list[str]:
        """Return configured chain module import paths (empty entries dropped)."""
        return [p.strip() for p in self.chain_modules.split(",") if p.strip()]

    @model_validator(mode="after")
    def validate_backend_and_workers(self) -> "Settings":
        """Validate backend selection.

        - Postgres: DATABASE_URL required.
        - Memory: no extra settings; state is lost on restart so the
          recovery sweep has nothing to find.
        """
        if self.database_backend == "postgres":
            if not self.database_url:
                raise ValueError(
                    "DATABASE_URL is required when database_backend is 'postgres'. "
                    "Set in environment or .env file."
                )
        elif self.database_backend != "memory":
            raise ValueError(
                f"database_backend must be 'postgres' or 'memory', got: {self.database_backend!r}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
