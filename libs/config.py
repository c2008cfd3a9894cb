"""
Global configuration shared by the converter services.

Provides globally shared configuration:
- OTEL settings
- Generic service-level runtime settings

Converter-specific options (schema mapping, registry) live in
`apps.converter.src.core.config` and must NOT be added here.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
DEFAULT_ENV_PATH: Path = PROJECT_ROOT / ".env"


class OTELConfig(BaseSettings):
    """OpenTelemetry configuration shared across services."""

    service_name: str = Field(default="avro-converter")
    otlp_endpoint: str = Field(default="http://otel-collector:4317")
    otlp_headers: Optional[str] = Field(default=None)
    resource_attributes: str = Field(default="deployment.environment=local")
    export_enabled: bool = Field(default=True)

    model_config = SettingsConfigDict(extra="ignore")

    def resource_attrs(self) -> Dict[str, str]:
        """Parse `k=v,k=v` resource attributes, skipping malformed items."""
        return {
            kv.split("=", 1)[0]: kv.split("=", 1)[1]
            for kv in self.resource_attributes.split(",")
            if "=" in kv
        }

    def headers(self) -> Optional[Dict[str, str]]:
        if not self.otlp_headers:
            return None
        return dict(h.split("=", 1) for h in self.otlp_headers.split(",") if "=" in h)


class ServiceConfig(BaseSettings):
    """Generic service-level config."""

    log_level: str = Field(default="INFO")
    environment: str = Field(default="local")

    model_config = SettingsConfigDict(extra="ignore")


class AppConfig(BaseSettings):
    """Root global configuration object."""

    otel: OTELConfig = Field(default_factory=OTELConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    @lru_cache(maxsize=1)
    def load(cls) -> "AppConfig":
        try:
            env_file = str(DEFAULT_ENV_PATH) if DEFAULT_ENV_PATH.exists() else None
            return cls(_env_file=env_file)
        except ValidationError as exc:
            raise RuntimeError("Invalid configuration values.") from exc
