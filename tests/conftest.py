"""Pytest configuration and shared fixtures."""

import io
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional
from unittest.mock import Mock

import fastavro
import pytest
from confluent_kafka.schema_registry import Schema
from confluent_kafka.schema_registry import SchemaRegistryClient as ConfluentRegistryClient
from confluent_kafka.schema_registry.error import SchemaRegistryError

from apps.converter.src.core.config import SCHEMA_CONFIG, SCHEMA_REGISTRY_URL_CONFIG
from apps.converter.src.infra.schema_registry import SchemaRegistryClient

REGISTRY_URL = "http://schema-registry:8081"


@pytest.fixture
def transaction_schema() -> Dict[str, Any]:
    """Avro schema for a simple payment transaction."""
    return {
        "type": "record",
        "name": "Transaction",
        "namespace": "com.example",
        "fields": [
            {"name": "id", "type": "string"},
            {"name": "amount", "type": "double"},
            {"name": "timestamp", "type": "long"},
        ],
    }


@pytest.fixture
def transaction() -> Dict[str, Any]:
    return {"id": "test", "amount": 2354.99, "timestamp": 1700000000000}


@pytest.fixture
def order_schema() -> Dict[str, Any]:
    return {
        "type": "record",
        "name": "Order",
        "fields": [
            {"name": "id", "type": "string"},
            {"name": "qty", "type": "int"},
        ],
    }


@pytest.fixture
def write_schema(tmp_path: Path) -> Callable[..., str]:
    """Write an Avro schema (dict or raw text) to a temporary .avsc file and return its path."""

    def _write(schema: Any, name: str = "schema.avsc") -> str:
        path = tmp_path / name
        text = schema if isinstance(schema, str) else json.dumps(schema)
        path.write_text(text, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def encode() -> Callable[[Any, Any], bytes]:
    """Encode a datum as schemaless Avro binary."""

    def _encode(schema: Any, datum: Any) -> bytes:
        buf = io.BytesIO()
        fastavro.schemaless_writer(buf, fastavro.parse_schema(schema), datum)
        return buf.getvalue()

    return _encode


@pytest.fixture
def local_config(write_schema) -> Callable[..., Dict[str, str]]:
    """Build converter options binding one source identifier to a local schema file."""

    def _config(identifier: str, schema: Any) -> Dict[str, str]:
        return {SCHEMA_CONFIG: f"{identifier}={write_schema(schema, f'{identifier}.avsc')}"}

    return _config


@pytest.fixture
def registry_backend() -> Callable[..., Mock]:
    """Mock confluent-kafka registry client whose latest version holds the given schema."""

    def _backend(
        schema: Any = None,
        schema_type: str = "AVRO",
        schema_str: Optional[str] = None,
        status_code: Optional[int] = None,
        message: str = "Subject not found",
        error: Optional[Exception] = None,
    ) -> Mock:
        backend = Mock(spec=ConfluentRegistryClient)
        if status_code is not None:
            error = SchemaRegistryError(status_code, status_code * 100 + 1, message)
        if error is not None:
            backend.get_latest_version.side_effect = error
        else:
            text = schema_str if schema_str is not None else json.dumps(schema)
            backend.get_latest_version.return_value = Mock(version=1, schema=Schema(text, schema_type))
        return backend

    return _backend


@pytest.fixture
def registry_client() -> Callable[..., SchemaRegistryClient]:
    def _client(backend: Mock, timeout_sec: float = 5.0) -> SchemaRegistryClient:
        return SchemaRegistryClient(
            base_url=REGISTRY_URL,
            logger=logging.getLogger("test.registry"),
            timeout_sec=timeout_sec,
            client=backend,
        )

    return _client


@pytest.fixture
def registry_config() -> Callable[..., Dict[str, str]]:
    def _config(mapping: str, **extra: str) -> Dict[str, str]:
        config = {SCHEMA_CONFIG: mapping, SCHEMA_REGISTRY_URL_CONFIG: REGISTRY_URL}
        config.update(extra)
        return config

    return _config
