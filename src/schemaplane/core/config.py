from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Schemaplane"
    app_env: str = "development"  # development, testing, production
    debug: bool = False

    # Control-plane database (projects registry)
    database_url: str
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full
    database_statement_cache_size: int = 100

    # Tenant databases - one physical database per project on this server
    tenant_database_url: str | None = None  # Defaults to database_url
    tenant_pool_size: int = 2
    tenant_max_overflow: int = 3
    tenant_pool_recycle_seconds: int = 1800
    tenant_statement_timeout_ms: int = 30000
    database_name_prefix: str = "udb_"

    # Schema operations
    schema_operation_timeout_seconds: float = 30.0

    @field_validator("database_ssl_mode")
    @classmethod
    def validate_ssl_mode(cls, v: str) -> str:
        allowed = {"disable", "prefer", "require", "verify-ca", "verify-full"}
        if v not in allowed:
            raise ValueError(f"DATABASE_SSL_MODE must be one of {sorted(allowed)}")
        return v

    @field_validator("database_name_prefix")
    @classmethod
    def validate_database_name_prefix(cls, v: str) -> str:
        """Prefix is embedded in generated database names, keep it identifier-safe."""
        if not v or not v.isascii() or not all(c.islower() or c.isdigit() or c == "_" for c in v):
            raise ValueError("DATABASE_NAME_PREFIX must be lowercase alphanumeric with underscores")
        if len(v) > 20:
            raise ValueError("DATABASE_NAME_PREFIX must be at most 20 characters")
        return v

    @field_validator("schema_operation_timeout_seconds")
    @classmethod
    def validate_operation_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("SCHEMA_OPERATION_TIMEOUT_SECONDS must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
