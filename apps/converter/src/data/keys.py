"""
Message key for converted records.

The key never depends on the payload schema: it always pairs the source
identifier with the external record id.
"""

from typing import Tuple

from libs.models.connect import ConnectField, ConnectSchema, SchemaType, Struct

KEY_SCHEMA_NAME: str = "com.datamountaineer.streamreactor.connect.converters.MsgKey"
IDENTIFIER_FIELD: str = "identifier"
SOURCE_ID_FIELD: str = "sourceId"

KEY_SCHEMA: ConnectSchema = ConnectSchema(
    type=SchemaType.STRUCT,
    name=KEY_SCHEMA_NAME,
    fields=(
        ConnectField(name=IDENTIFIER_FIELD, index=0, field_schema=ConnectSchema(type=SchemaType.STRING)),
        ConnectField(name=SOURCE_ID_FIELD, index=1, field_schema=ConnectSchema(type=SchemaType.STRING)),
    ),
)


def build_key(source_identifier: str, external_id: str) -> Tuple[ConnectSchema, Struct]:
    """
    Build the key record for a converted payload.

    Args:
        source_identifier: Logical source the payload came from.
        external_id: Upstream record id; any string, including non-numeric keys.

    Returns:
        The constant key schema and a key value embedding both inputs verbatim.
    """
    if source_identifier is None:
        raise ValueError("source_identifier must not be None")
    key = Struct(KEY_SCHEMA).put(IDENTIFIER_FIELD, source_identifier).put(SOURCE_ID_FIELD, external_id)
    return KEY_SCHEMA, key
