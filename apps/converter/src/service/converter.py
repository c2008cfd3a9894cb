"""
Schema-resolving Avro record converter.

Takes a raw Avro payload tagged with a topic, a source identifier and an
external record id, and turns it into a `SourceRecord` ready for publication:

    payload ──lookup──▶ schema ──decode──▶ record ──translate──▶ (schema, value)
                                                   build_key ──▶ (key schema, key)

Lifecycle: UNINITIALIZED → READY via `initialize`. There is no closed state;
the only state held is the schema table.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Mapping, Optional

from apps.converter.src.core.config import ConverterConfig
from apps.converter.src.data.keys import build_key
from apps.converter.src.data.schema_table import SchemaTable
from apps.converter.src.data.translator import AvroTranslator
from apps.converter.src.domain.errors import ConverterError, ConverterNotReadyError
from apps.converter.src.infra.avro_decoder import decode
from apps.converter.src.infra.schema_registry import SchemaRegistryClient
from libs.manifest import Manifest
from libs.models.connect import SourceRecord
from libs.observability import get_converter_instruments, get_logger, get_tracer

UNKNOWN_SOURCE_LABEL: str = "unknown"


class ConverterState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class AvroConverter:
    """
    Converts raw Avro payloads into Connect source records.

    `initialize` must complete before any `convert` call; after that the
    converter may be shared by any number of threads. Failures propagate to
    the caller unchanged and are never retried here.
    """

    def __init__(
        self,
        manifest: Optional[Manifest] = None,
        registry_client: Optional[SchemaRegistryClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            manifest: Build manifest reported at initialization.
            registry_client: Registry client to use instead of one built from config.
            logger: Logger instance; defaults to the module logger.
        """
        self._manifest = manifest
        self._registry_client = registry_client
        self._log = logger or get_logger(__name__)
        self._tracer = get_tracer("avro-converter.convert")
        self._converted, self._tombstones, self._failures, self._latency = get_converter_instruments()

        self._translator = AvroTranslator()
        self._table: Optional[SchemaTable] = None
        self._state = ConverterState.UNINITIALIZED

    @property
    def state(self) -> ConverterState:
        return self._state

    @property
    def schema_table(self) -> SchemaTable:
        if self._table is None:
            raise ConverterNotReadyError("Converter has not been initialized")
        return self._table

    def initialize(self, config: Mapping[str, str]) -> None:
        """
        Build the schema table from the host-supplied option map.

        Every eagerly resolved schema is translated once here, so an
        untranslatable schema fails initialization rather than the first call.

        Raises:
            ConfigurationError: If options are missing or malformed.
            SchemaResolutionError: If an eager schema cannot be read or fetched.
            SchemaTranslationError: If a schema has no Connect representation.
        """
        with self._tracer.start_as_current_span("initialize"):
            converter_config = ConverterConfig.from_mapping(config)
            table = SchemaTable.from_config(converter_config, registry_client=self._registry_client)
            for entry in table.entries():
                self._translator.to_connect_schema(entry.schema)

            self._table = table
            self._state = ConverterState.READY

        self._log.info(
            "Converter initialized",
            extra={
                "identifiers": table.identifiers(),
                "schema_registry_url": converter_config.schema_registry_url,
                "lazy_registry": converter_config.schema_registry_lazy,
                "version": self._manifest.version if self._manifest else None,
            },
        )

    def _source_label(self, source_identifier: str) -> str:
        """Metric label for a source; identifiers outside the schema table share one label."""
        if source_identifier in self._table:
            return source_identifier
        return UNKNOWN_SOURCE_LABEL

    def convert(
        self,
        topic: str,
        source_identifier: str,
        external_id: str,
        payload: Optional[bytes],
    ) -> SourceRecord:
        """
        Convert one payload into a source record.

        A None payload is a tombstone: it is never decoded and yields a record
        carrying only the topic, whether or not the source is configured.

        Raises:
            ConverterNotReadyError: If called before `initialize`.
            UnknownSourceError: If the source identifier is not configured.
            SchemaResolutionError: If a lazily-fetched schema cannot be resolved.
            PayloadDecodeError: If the payload does not decode against its schema.
            SchemaTranslationError: If the decoded record cannot be translated.
        """
        if self._state is not ConverterState.READY:
            raise ConverterNotReadyError("convert called before initialize")

        if payload is None:
            self._tombstones.add(1, {"source": self._source_label(source_identifier)})
            return SourceRecord(topic=topic)

        start = time.perf_counter()
        with self._tracer.start_as_current_span("convert") as span:
            span.set_attribute("converter.topic", topic)
            span.set_attribute("converter.source", source_identifier)
            try:
                schema = self._table.lookup(source_identifier)
                decoded = decode(schema, payload)
                value_schema, value = self._translator.translate(decoded)
                key_schema, key = build_key(source_identifier, external_id)
            except ConverterError as exc:
                self._failures.add(1, {"source": self._source_label(source_identifier), "error": type(exc).__name__})
                self._log.warning(
                    "Payload conversion failed",
                    extra={
                        "topic": topic,
                        "source": source_identifier,
                        "external_id": external_id,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
                raise
            finally:
                self._latency.record((time.perf_counter() - start) * 1000)

        self._converted.add(1, {"source": self._source_label(source_identifier)})
        return SourceRecord(
            topic=topic,
            key=key,
            key_schema=key_schema,
            value=value,
            value_schema=value_schema,
        )
