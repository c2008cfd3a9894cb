"""
Binary Avro decoding for raw (schemaless) payloads.

Payloads carry no header or schema id; the writer schema is the one bound to
the source identifier in the schema table. Values read from a named union
branch (record, enum or fixed) come back as `(full name, value)` pairs.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Any

from fastavro import schemaless_reader

from apps.converter.src.domain.errors import PayloadDecodeError
from apps.converter.src.domain.schemas import AvroSchema


@dataclass(frozen=True)
class DecodedRecord:
    """A decoded value together with the schema it was decoded against."""

    schema: AvroSchema
    value: Any


def decode(schema: AvroSchema, payload: bytes) -> DecodedRecord:
    """
    Decode a payload against its writer schema.

    Decoding is all-or-nothing: the whole payload must be consumed.

    Raises:
        PayloadDecodeError: If the bytes are malformed, truncated, carry
            trailing data or were written with an incompatible schema.
    """
    buffer = io.BytesIO(payload)
    try:
        value = schemaless_reader(buffer, schema.parsed, return_named_type=True)
    except Exception as exc:  # noqa: BLE001
        raise PayloadDecodeError(
            f"Failed to decode payload against '{schema.fullname}': {exc!r}"
        ) from exc

    remaining = len(payload) - buffer.tell()
    if remaining:
        raise PayloadDecodeError(
            f"Payload for '{schema.fullname}' has {remaining} unread trailing byte(s)"
        )
    return DecodedRecord(schema=schema, value=value)
