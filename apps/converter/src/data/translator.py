"""
Avro → Connect translation.

Maps a decoded Avro value and its schema onto the pipeline's Connect
representation (`libs.models.connect`). The mapping follows the conventions
of Confluent's AvroData so that records converted here line up with records
produced by the Kafka Connect Avro converter:

- nullable unions `[null, T]` become an optional `T`
- other unions become a STRUCT named `io.confluent.connect.avro.Union`
- enums become STRING with the symbols kept as schema parameters
- fixed becomes BYTES with its size kept as a schema parameter
- time-micros stays a plain INT64 (microseconds since midnight)

Union values read from a named branch arrive tagged with the branch name, so
the Union member is the one the writer chose. Primitive branches are matched
by value, preferring the first branch that can hold it.

Schema translation is cached per schema text and is deterministic.
"""

from __future__ import annotations

import datetime
import decimal
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from apps.converter.src.domain.errors import SchemaTranslationError
from apps.converter.src.domain.schemas import AvroSchema
from apps.converter.src.infra.avro_decoder import DecodedRecord
from libs.models.connect import (
    DATE_LOGICAL_NAME,
    DECIMAL_LOGICAL_NAME,
    DECIMAL_SCALE_PARAM,
    TIME_LOGICAL_NAME,
    TIMESTAMP_LOGICAL_NAME,
    ConnectField,
    ConnectSchema,
    SchemaType,
    Struct,
)

UNION_SCHEMA_NAME: str = "io.confluent.connect.avro.Union"
ENUM_PARAM: str = "io.confluent.connect.avro.Enum"
FIXED_SIZE_PARAM: str = "connect.avro.fixed.size"
DECIMAL_PRECISION_PARAM: str = "connect.decimal.precision"

PRIMITIVE_TYPES: Dict[str, SchemaType] = {
    "boolean": SchemaType.BOOLEAN,
    "int": SchemaType.INT32,
    "long": SchemaType.INT64,
    "float": SchemaType.FLOAT32,
    "double": SchemaType.FLOAT64,
    "bytes": SchemaType.BYTES,
    "string": SchemaType.STRING,
}
RECORD_TYPES = ("record", "error")
TIME_LOGICAL_TYPES = ("time-millis", "time-micros")
NAMED_TYPES = RECORD_TYPES + ("enum", "fixed")
INT32_RANGE = range(-(2**31), 2**31)
TIMESTAMP_LOGICAL_TYPES = (
    "timestamp-millis",
    "timestamp-micros",
    "local-timestamp-millis",
    "local-timestamp-micros",
)


def _fullname(avro: Dict[str, Any]) -> str:
    name = avro["name"]
    namespace = avro.get("namespace")
    if "." in name or not namespace:
        return name
    return f"{namespace}.{name}"


def _is_null(avro: Any) -> bool:
    return avro == "null" or (isinstance(avro, dict) and avro.get("type") == "null")


def _branch_name(avro: Any) -> str:
    """Name a resolved union branch the way the codec tags it: full name for named types, type otherwise."""
    if isinstance(avro, str):
        return avro
    if avro.get("type") in NAMED_TYPES:
        return _fullname(avro)
    return str(avro.get("type"))


def _micros_of_day(value: datetime.time) -> int:
    return ((value.hour * 60 + value.minute) * 60 + value.second) * 1_000_000 + value.microsecond


@dataclass(frozen=True)
class _Translation:
    connect_schema: ConnectSchema
    named: Dict[str, Any]


class _SchemaBuilder:
    """Walks one parsed Avro schema and builds its Connect schema."""

    def __init__(self) -> None:
        self.named: Dict[str, Any] = {}
        self._built: Dict[str, ConnectSchema] = {}
        self._in_progress: Set[str] = set()

    def build(self, avro: Any) -> ConnectSchema:
        if isinstance(avro, list):
            return self._union(avro)

        if isinstance(avro, str):
            if avro in PRIMITIVE_TYPES:
                return ConnectSchema(type=PRIMITIVE_TYPES[avro])
            if avro == "null":
                raise SchemaTranslationError("Unsupported Avro type: standalone null schema")
            return self._reference(avro)

        if not isinstance(avro, dict):
            raise SchemaTranslationError(f"Unsupported Avro type: {avro!r}")

        avro_type = avro.get("type")
        if isinstance(avro_type, (dict, list)):
            return self.build(avro_type)

        logical = avro.get("logicalType")
        if logical and avro_type in ("int", "long", "bytes", "string", "fixed"):
            logical_schema = self._logical(avro, logical)
            if logical_schema is not None:
                return logical_schema

        if avro_type in RECORD_TYPES:
            return self._record(avro)
        if avro_type == "enum":
            return self._enum(avro)
        if avro_type == "fixed":
            return self._fixed(avro)
        if avro_type == "array":
            return ConnectSchema(type=SchemaType.ARRAY, value_schema=self.build(avro["items"]))
        if avro_type == "map":
            return ConnectSchema(
                type=SchemaType.MAP,
                key_schema=ConnectSchema(type=SchemaType.STRING),
                value_schema=self.build(avro["values"]),
            )
        if isinstance(avro_type, str):
            return self.build(avro_type)

        raise SchemaTranslationError(f"Unsupported Avro type: {avro_type!r}")

    def _reference(self, name: str) -> ConnectSchema:
        if name in self._in_progress:
            raise SchemaTranslationError(f"Unsupported Avro type: recursive reference to '{name}'")
        if name in self._built:
            return self._built[name]
        raise SchemaTranslationError(f"Unsupported Avro type: {name}")

    def _register(self, fullname: str, avro: Dict[str, Any], schema: ConnectSchema) -> ConnectSchema:
        self.named[fullname] = avro
        self._built[fullname] = schema
        return schema

    def _record(self, avro: Dict[str, Any]) -> ConnectSchema:
        fullname = _fullname(avro)
        self.named[fullname] = avro
        self._in_progress.add(fullname)

        fields: List[ConnectField] = []
        for index, avro_field in enumerate(avro.get("fields", [])):
            field_schema = self.build(avro_field["type"])
            updates: Dict[str, Any] = {}
            if avro_field.get("doc"):
                updates["doc"] = avro_field["doc"]
            if "default" in avro_field:
                default = _default_value(field_schema, avro_field["default"])
                if default is not None:
                    updates["default"] = default
            if updates:
                field_schema = field_schema.model_copy(update=updates)
            fields.append(ConnectField(name=avro_field["name"], index=index, field_schema=field_schema))

        self._in_progress.discard(fullname)
        schema = ConnectSchema(
            type=SchemaType.STRUCT,
            name=fullname,
            doc=avro.get("doc"),
            fields=tuple(fields),
        )
        return self._register(fullname, avro, schema)

    def _enum(self, avro: Dict[str, Any]) -> ConnectSchema:
        fullname = _fullname(avro)
        parameters = {ENUM_PARAM: fullname}
        for symbol in avro.get("symbols", []):
            parameters[f"{ENUM_PARAM}.{symbol}"] = symbol
        schema = ConnectSchema(
            type=SchemaType.STRING,
            name=fullname,
            doc=avro.get("doc"),
            parameters=parameters,
        )
        return self._register(fullname, avro, schema)

    def _fixed(self, avro: Dict[str, Any]) -> ConnectSchema:
        fullname = _fullname(avro)
        schema = ConnectSchema(
            type=SchemaType.BYTES,
            name=fullname,
            parameters={FIXED_SIZE_PARAM: str(avro["size"])},
        )
        return self._register(fullname, avro, schema)

    def _logical(self, avro: Dict[str, Any], logical: str) -> Optional[ConnectSchema]:
        base = avro["type"]
        if logical == "decimal" and base in ("bytes", "fixed"):
            parameters = {DECIMAL_SCALE_PARAM: str(avro.get("scale", 0))}
            if "precision" in avro:
                parameters[DECIMAL_PRECISION_PARAM] = str(avro["precision"])
            schema = ConnectSchema(
                type=SchemaType.BYTES,
                name=DECIMAL_LOGICAL_NAME,
                version=1,
                parameters=parameters,
            )
            if base == "fixed":
                self.named[_fullname(avro)] = avro
                self._built[_fullname(avro)] = schema
            return schema
        if logical == "date" and base == "int":
            return ConnectSchema(type=SchemaType.INT32, name=DATE_LOGICAL_NAME, version=1)
        if logical == "time-millis" and base == "int":
            return ConnectSchema(type=SchemaType.INT32, name=TIME_LOGICAL_NAME, version=1)
        if logical in TIMESTAMP_LOGICAL_TYPES and base == "long":
            return ConnectSchema(type=SchemaType.INT64, name=TIMESTAMP_LOGICAL_NAME, version=1)
        # time-micros, uuid and unknown logical types fall back to the underlying type
        return None

    def _union(self, branches: List[Any]) -> ConnectSchema:
        non_null = [branch for branch in branches if not _is_null(branch)]
        if not non_null:
            raise SchemaTranslationError("Unsupported Avro type: union with only null branches")
        if len(non_null) == 1:
            return self.build(non_null[0]).as_optional()

        fields = tuple(
            ConnectField(
                name=self._member_name(branch),
                index=index,
                field_schema=self.build(branch).as_optional(),
            )
            for index, branch in enumerate(non_null)
        )
        return ConnectSchema(
            type=SchemaType.STRUCT,
            name=UNION_SCHEMA_NAME,
            optional=len(non_null) < len(branches),
            fields=fields,
        )

    def _member_name(self, branch: Any) -> str:
        if isinstance(branch, str):
            return branch.rsplit(".", 1)[-1]
        avro_type = branch.get("type")
        if isinstance(avro_type, (dict, list)):
            return self._member_name(avro_type)
        if "name" in branch and avro_type in NAMED_TYPES:
            return _fullname(branch).rsplit(".", 1)[-1]
        return str(avro_type).rsplit(".", 1)[-1]


def _default_value(schema: ConnectSchema, default: Any) -> Any:
    """Carry a field default when it has a direct Connect representation."""
    if default is None or schema.type is SchemaType.STRUCT or schema.name in (
        DECIMAL_LOGICAL_NAME,
        DATE_LOGICAL_NAME,
        TIME_LOGICAL_NAME,
        TIMESTAMP_LOGICAL_NAME,
    ):
        return None
    if schema.type is SchemaType.BYTES and isinstance(default, str):
        # Avro encodes bytes defaults as ISO-8859-1 strings
        return default.encode("latin-1")
    return default


class _DataConverter:
    """Converts one decoded value by walking its Avro and Connect schemas together."""

    def __init__(self, named: Dict[str, Any]) -> None:
        self._named = named

    def _resolve(self, avro: Any) -> Any:
        if isinstance(avro, str) and avro not in PRIMITIVE_TYPES and avro != "null":
            return self._named[avro]
        if isinstance(avro, dict) and isinstance(avro.get("type"), (dict, list)):
            return self._resolve(avro["type"])
        if (
            isinstance(avro, dict)
            and isinstance(avro.get("type"), str)
            and avro["type"] in self._named
        ):
            return self._named[avro["type"]]
        return avro

    def convert(self, avro: Any, connect: ConnectSchema, value: Any) -> Any:
        if value is None:
            return None

        avro = self._resolve(avro)
        if isinstance(avro, list):
            return self._union(avro, connect, value)

        avro_type = avro if isinstance(avro, str) else avro.get("type")
        if avro_type in RECORD_TYPES:
            struct = Struct(connect)
            for avro_field in avro["fields"]:
                connect_field = connect.field(avro_field["name"])
                struct.put(
                    avro_field["name"],
                    self.convert(avro_field["type"], connect_field.field_schema, value.get(avro_field["name"])),
                )
            return struct
        if avro_type == "array":
            return [self.convert(avro["items"], connect.value_schema, item) for item in value]
        if avro_type == "map":
            return {key: self.convert(avro["values"], connect.value_schema, item) for key, item in value.items()}
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, datetime.time) and isinstance(avro, dict) and avro.get("logicalType") == "time-micros":
            return _micros_of_day(value)
        return value

    def _union(self, branches: List[Any], connect: ConnectSchema, value: Any) -> Any:
        non_null = [branch for branch in branches if not _is_null(branch)]
        index, value = self._tagged_branch(non_null, value)
        if len(non_null) == 1:
            return self.convert(non_null[0], connect, value)

        if index is None:
            index = self._branch_for_value(non_null, connect, value)
        member = connect.fields[index]
        return Struct(connect).put(member.name, self.convert(non_null[index], member.field_schema, value))

    def _tagged_branch(self, branches: List[Any], value: Any) -> Tuple[Optional[int], Any]:
        """
        Unwrap a `(type name, value)` pair into the branch index it names.

        The decoder tags every value read from a named union branch this way,
        so records, enums and fixed values keep the branch they were written with.
        """
        if not (isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str)):
            return None, value

        name, inner = value
        for index, branch in enumerate(branches):
            if _branch_name(self._resolve(branch)) == name:
                return index, inner
        raise SchemaTranslationError(f"Union has no branch named '{name}'")

    def _branch_for_value(self, branches: List[Any], connect: ConnectSchema, value: Any) -> int:
        for index, branch in enumerate(branches):
            if self._matches(branch, value):
                return index
        raise SchemaTranslationError(
            f"Value of type {type(value).__name__} matches no branch of union {connect.name}"
        )

    def _matches(self, branch: Any, value: Any) -> bool:
        branch = self._resolve(branch)
        if isinstance(branch, list):
            return any(self._matches(member, value) for member in branch)

        avro_type = branch if isinstance(branch, str) else branch.get("type")
        logical = branch.get("logicalType") if isinstance(branch, dict) else None

        if logical == "decimal":
            return isinstance(value, decimal.Decimal)
        if logical == "date":
            return isinstance(value, datetime.date) and not isinstance(value, datetime.datetime)
        if logical in TIME_LOGICAL_TYPES:
            return isinstance(value, datetime.time)
        if logical in TIMESTAMP_LOGICAL_TYPES:
            return isinstance(value, datetime.datetime)
        if logical == "uuid" and isinstance(value, uuid.UUID):
            return True

        if avro_type == "boolean":
            return isinstance(value, bool)
        if avro_type == "int":
            return isinstance(value, int) and not isinstance(value, bool) and value in INT32_RANGE
        if avro_type == "long":
            return isinstance(value, int) and not isinstance(value, bool)
        if avro_type in ("float", "double"):
            return isinstance(value, float)
        if avro_type == "bytes":
            return isinstance(value, bytes)
        if avro_type == "string":
            return isinstance(value, str)
        if avro_type == "enum":
            return isinstance(value, str) and value in branch.get("symbols", [])
        if avro_type == "fixed":
            return isinstance(value, bytes) and len(value) == branch["size"]
        if avro_type in RECORD_TYPES:
            return isinstance(value, dict) and set(value) == {f["name"] for f in branch["fields"]}
        if avro_type == "array":
            return isinstance(value, list)
        if avro_type == "map":
            return isinstance(value, dict)
        return False


class AvroTranslator:
    """
    Translates decoded Avro records into Connect schema/value pairs.

    Safe to share between threads: translated schemas are cached under a lock
    and are never mutated after construction.
    """

    def __init__(self) -> None:
        self._cache: Dict[str, _Translation] = {}
        self._lock = threading.Lock()

    def translate(self, decoded: DecodedRecord) -> Tuple[ConnectSchema, Any]:
        translation = self._translation(decoded.schema)
        value = _DataConverter(translation.named).convert(
            decoded.schema.parsed, translation.connect_schema, decoded.value
        )
        return translation.connect_schema, value

    def to_connect_schema(self, schema: AvroSchema) -> ConnectSchema:
        return self._translation(schema).connect_schema

    def to_connect_data(self, schema: AvroSchema, value: Any) -> Any:
        return self.translate(DecodedRecord(schema=schema, value=value))[1]

    def _translation(self, schema: AvroSchema) -> _Translation:
        with self._lock:
            cached = self._cache.get(schema.schema_str)
        if cached is not None:
            return cached

        builder = _SchemaBuilder()
        translation = _Translation(connect_schema=builder.build(schema.parsed), named=builder.named)
        with self._lock:
            return self._cache.setdefault(schema.schema_str, translation)
