"""
Connect-style data model shared by the converter and downstream publishers.

The pipeline represents every record, whatever its wire format, as a
`ConnectSchema` plus a value:

- primitives map to Python scalars (int, float, bool, str, bytes)
- ARRAY values are lists, MAP values are dicts
- STRUCT values are `Struct` instances bound to their schema
- logical types (Decimal, Date, Time, Timestamp) carry Python objects
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

DECIMAL_LOGICAL_NAME: str = "org.apache.kafka.connect.data.Decimal"
DATE_LOGICAL_NAME: str = "org.apache.kafka.connect.data.Date"
TIME_LOGICAL_NAME: str = "org.apache.kafka.connect.data.Time"
TIMESTAMP_LOGICAL_NAME: str = "org.apache.kafka.connect.data.Timestamp"
DECIMAL_SCALE_PARAM: str = "scale"


class SchemaType(str, Enum):
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOLEAN = "boolean"
    STRING = "string"
    BYTES = "bytes"
    ARRAY = "array"
    MAP = "map"
    STRUCT = "struct"


class ConnectSchema(BaseModel):
    """
    Immutable description of a Connect value.

    Two schemas built from the same definition compare equal, which is what
    makes schema translation deterministic from the caller's point of view.
    """

    type: SchemaType
    optional: bool = False
    name: Optional[str] = None
    version: Optional[int] = None
    doc: Optional[str] = None
    default: Any = None
    parameters: Dict[str, str] = Field(default_factory=dict)

    fields: Tuple["ConnectField", ...] = ()
    key_schema: Optional["ConnectSchema"] = None
    value_schema: Optional["ConnectSchema"] = None

    model_config = ConfigDict(frozen=True)

    def field(self, name: str) -> Optional["ConnectField"]:
        for candidate in self.fields:
            if candidate.name == name:
                return candidate
        return None

    def as_optional(self) -> "ConnectSchema":
        """Return a copy of this schema that admits null."""
        return self.model_copy(update={"optional": True})


class ConnectField(BaseModel):
    name: str
    index: int
    field_schema: ConnectSchema

    model_config = ConfigDict(frozen=True)


ConnectSchema.model_rebuild()


class Struct:
    """
    A STRUCT value: field values bound to a STRUCT schema.

    Values are validated on `put` against the field set; nested values are
    not re-validated, they are trusted to come from a translated record.
    """

    def __init__(self, schema: ConnectSchema) -> None:
        if schema.type is not SchemaType.STRUCT:
            raise ValueError(f"Struct requires a STRUCT schema, got {schema.type.value}")
        self.schema = schema
        self._values: Dict[str, Any] = {}

    def put(self, name: str, value: Any) -> "Struct":
        field = self.schema.field(name)
        if field is None:
            raise ValueError(f"{name} is not a valid field name")
        if value is None and not field.field_schema.optional:
            raise ValueError(f"Field {name} is required and cannot be null")
        self._values[name] = value
        return self

    def get(self, name: str) -> Any:
        if self.schema.field(name) is None:
            raise ValueError(f"{name} is not a valid field name")
        return self._values.get(name)

    def to_dict(self) -> Dict[str, Any]:
        """Recursively unwrap into plain Python containers."""
        return {field.name: _unwrap(self._values.get(field.name)) for field in self.schema.fields}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Struct):
            return NotImplemented
        return self.schema == other.schema and self._values == other._values

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"Struct{{{body}}}"


def _unwrap(value: Any) -> Any:
    if isinstance(value, Struct):
        return value.to_dict()
    if isinstance(value, list):
        return [_unwrap(v) for v in value]
    if isinstance(value, dict):
        return {k: _unwrap(v) for k, v in value.items()}
    return value


class SourceRecord(BaseModel):
    """
    Output of a single conversion, ready for publication.

    A tombstone carries only the topic; every other attribute is None.
    """

    topic: str
    key: Optional[Struct] = None
    key_schema: Optional[ConnectSchema] = None
    value: Any = None
    value_schema: Optional[ConnectSchema] = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def is_tombstone(self) -> bool:
        return self.value is None and self.value_schema is None
