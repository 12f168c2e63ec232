"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_BASE_CURRENCY = "EUR"
DEFAULT_DATABASE_URL = "sqlite:///./fifo_ledger.db"


class AppSettings(BaseSettings):
    """Configuration options for the FIFO ledger service."""

    app_name: str = Field(default="FIFO Ledger")
    base_currency: str = Field(default=DEFAULT_BASE_CURRENCY, min_length=3, max_length=3)

    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy database URL.",
    )
    database_echo: bool = Field(default=False)

    fifo_strict_mode: bool = Field(
        default=False,
        description="Raise on oversells and unresolved transfers instead of degrading.",
    )

    log_level: str = Field(default="INFO")

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="fifo-ledger")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        def _mask(key: str, value: Any) -> Any:
            if key == "database_url" and isinstance(value, str) and "@" in value:
                scheme, _, rest = value.partition("://")
                return f"{scheme}://***@{rest.rsplit('@', 1)[-1]}"
            return value

        return {k: _mask(k, v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_BASE_CURRENCY",
    "DEFAULT_DATABASE_URL",
    "get_settings",
]
