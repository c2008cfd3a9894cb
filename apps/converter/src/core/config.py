"""
Service-specific configuration for the converter.

Two layers:

- `ConverterConfig` validates the option map handed to
  `AvroConverter.initialize` by the hosting pipeline:

      connect.source.converter.avro.schemas=orders=/schemas/orders.avsc
      schema.registry.url=http://schema-registry:8081
      schema.registry.timeout.sec=5
      schema.registry.lazy=false

- `ConverterSettings` reads the same options from the ROOT .env / environment
  using namespaced keys, for the standalone entrypoint:

      CONVERTER__SCHEMAS=orders=/schemas/orders.avsc
      CONVERTER__SCHEMA_REGISTRY_URL=http://schema-registry:8081
      CONVERTER__SCHEMA_REGISTRY_TIMEOUT_SEC=5
      CONVERTER__SCHEMA_REGISTRY_LAZY=false
"""

from functools import lru_cache
from typing import Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from apps.converter.src.domain.errors import ConfigurationError

SCHEMA_CONFIG: str = "connect.source.converter.avro.schemas"
SCHEMA_REGISTRY_URL_CONFIG: str = "schema.registry.url"
SCHEMA_REGISTRY_TIMEOUT_CONFIG: str = "schema.registry.timeout.sec"
SCHEMA_REGISTRY_LAZY_CONFIG: str = "schema.registry.lazy"

DEFAULT_REGISTRY_TIMEOUT_SEC: float = 5.0


class ConverterConfig(BaseModel):
    """Validated converter options, immutable after initialization."""

    schemas: str = Field(
        alias=SCHEMA_CONFIG,
        description="Comma-separated identifier=locator pairs.",
    )
    schema_registry_url: Optional[str] = Field(
        default=None,
        alias=SCHEMA_REGISTRY_URL_CONFIG,
        description="When set, locators are registry subjects instead of file paths.",
    )
    schema_registry_timeout_sec: float = Field(
        default=DEFAULT_REGISTRY_TIMEOUT_SEC,
        gt=0,
        alias=SCHEMA_REGISTRY_TIMEOUT_CONFIG,
    )
    schema_registry_lazy: bool = Field(
        default=False,
        alias=SCHEMA_REGISTRY_LAZY_CONFIG,
        description="Fetch registry schemas on first use instead of at initialization.",
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @field_validator("schemas")
    @classmethod
    def _schemas_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("schema mapping must not be empty")
        return value

    @field_validator("schema_registry_url")
    @classmethod
    def _blank_url_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def uses_registry(self) -> bool:
        return self.schema_registry_url is not None

    @classmethod
    def from_mapping(cls, config: Mapping[str, str]) -> "ConverterConfig":
        """
        Validate the host-supplied option map.

        Raises:
            ConfigurationError: If a required option is missing or a value is invalid.
        """
        try:
            return cls.model_validate(dict(config))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid converter configuration: {exc}") from exc


class ConverterSettings(BaseSettings):
    """
    Converter options read from environment variables prefixed with `CONVERTER__`.
    """

    schemas: str = Field(default="")
    schema_registry_url: Optional[str] = Field(default=None)
    schema_registry_timeout_sec: float = Field(default=DEFAULT_REGISTRY_TIMEOUT_SEC, gt=0)
    schema_registry_lazy: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="CONVERTER__", case_sensitive=False, extra="ignore")

    def to_config_map(self) -> Dict[str, str]:
        """Render the settings as the option map accepted by `AvroConverter.initialize`."""
        config = {
            SCHEMA_CONFIG: self.schemas,
            SCHEMA_REGISTRY_TIMEOUT_CONFIG: str(self.schema_registry_timeout_sec),
            SCHEMA_REGISTRY_LAZY_CONFIG: str(self.schema_registry_lazy).lower(),
        }
        if self.schema_registry_url:
            config[SCHEMA_REGISTRY_URL_CONFIG] = self.schema_registry_url
        return config


@lru_cache()
def get_converter_settings() -> ConverterSettings:
    """
    Cached accessor for ConverterSettings.

    Returns:
        ConverterSettings: converter options from the environment.
    """
    return ConverterSettings()
