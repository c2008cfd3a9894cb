"""
Shared library package for the converter services.

This package contains:
- the Connect data model (schemas, structs, source records)
- observability utilities (logging, tracing, metrics)
- shared config and the build manifest
"""

from libs.manifest import Manifest
from libs.models.connect import ConnectField, ConnectSchema, SchemaType, SourceRecord, Struct

__all__ = [
    "ConnectField",
    "ConnectSchema",
    "Manifest",
    "SchemaType",
    "SourceRecord",
    "Struct",
]
