"""
Schema sources and the `identifier=locator` mapping.

No I/O happens here; the schema table in `data.schema_table` resolves each
source into an `AvroSchema` during initialization.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Tuple, Union

import fastavro

from apps.converter.src.domain.errors import ConfigurationError, SchemaResolutionError


class SchemaOrigin(str, Enum):
    LOCAL = "local"
    REGISTRY = "registry"


@dataclass(frozen=True)
class LocalSchemaSource:
    """Schema text read from an `.avsc` file on disk."""

    path: str
    origin: SchemaOrigin = field(default=SchemaOrigin.LOCAL, init=False)

    @property
    def locator(self) -> str:
        return self.path


@dataclass(frozen=True)
class RegistrySchemaSource:
    """Latest registered schema for a Schema Registry subject."""

    subject: str
    origin: SchemaOrigin = field(default=SchemaOrigin.REGISTRY, init=False)

    @property
    def locator(self) -> str:
        return self.subject


SchemaSource = Union[LocalSchemaSource, RegistrySchemaSource]


@dataclass(frozen=True, eq=False)
class AvroSchema:
    """
    A parsed Avro schema, immutable once resolved.

    Attributes:
        schema_str: Schema text as read from disk or the registry.
        parsed: fastavro-parsed schema used for decoding and translation.
        fullname: Record full name, or the primitive type name.
    """

    schema_str: str
    parsed: Any = field(repr=False)
    fullname: str


@dataclass(frozen=True)
class SchemaEntry:
    identifier: str
    schema: AvroSchema
    origin: SchemaOrigin
    locator: str


def parse_avro_schema(schema_str: str) -> AvroSchema:
    """
    Parse Avro schema text.

    Raises:
        SchemaResolutionError: If the text is not JSON or not a valid Avro schema.
    """
    try:
        raw = json.loads(schema_str)
    except ValueError as exc:
        raise SchemaResolutionError(f"Schema is not valid JSON: {exc}") from exc

    try:
        parsed = fastavro.parse_schema(raw)
    except Exception as exc:  # noqa: BLE001
        raise SchemaResolutionError(f"Invalid Avro schema: {exc}") from exc

    if isinstance(parsed, dict):
        fullname = parsed.get("name") or parsed.get("type")
    elif isinstance(parsed, list):
        fullname = "union"
    else:
        fullname = parsed
    return AvroSchema(schema_str=schema_str, parsed=parsed, fullname=str(fullname))


def parse_schema_mapping(raw: str, use_registry: bool) -> List[Tuple[str, SchemaSource]]:
    """
    Parse `identifier=locator` pairs separated by commas.

    Args:
        raw: Mapping string, e.g. "orders=/schemas/orders.avsc,users=/schemas/users.avsc".
        use_registry: Interpret locators as registry subjects instead of file paths.

    Returns:
        Ordered (identifier, source) pairs.

    Raises:
        ConfigurationError: On an empty string, a malformed pair or a duplicate identifier.
    """
    if raw is None or not raw.strip():
        raise ConfigurationError("Schema mapping is empty")

    pairs: List[Tuple[str, SchemaSource]] = []
    seen = set()
    for item in raw.split(","):
        item = item.strip()
        if not item:
            raise ConfigurationError(f"Empty entry in schema mapping '{raw}'")
        if "=" not in item:
            raise ConfigurationError(f"Invalid schema mapping entry '{item}'; expected identifier=locator")

        identifier, locator = (part.strip() for part in item.split("=", 1))
        if not identifier:
            raise ConfigurationError(f"Missing identifier in schema mapping entry '{item}'")
        if not locator:
            raise ConfigurationError(f"Missing schema locator for identifier '{identifier}'")
        if identifier in seen:
            raise ConfigurationError(f"Duplicate identifier '{identifier}' in schema mapping")
        seen.add(identifier)

        source: SchemaSource = (
            RegistrySchemaSource(subject=locator) if use_registry else LocalSchemaSource(path=locator)
        )
        pairs.append((identifier, source))

    return pairs
