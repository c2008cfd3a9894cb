"""
Source identifier → schema table.

Built once from `ConverterConfig` and read-only afterwards. Local schemas are
always resolved during construction. Registry schemas are resolved during
construction too, unless lazy resolution is enabled, in which case each
subject is fetched on first lookup behind a per-subject lock so that
concurrent first lookups issue a single registry request.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Tuple

from apps.converter.src.core.config import ConverterConfig
from apps.converter.src.domain.errors import SchemaResolutionError, UnknownSourceError
from apps.converter.src.domain.schemas import (
    AvroSchema,
    LocalSchemaSource,
    RegistrySchemaSource,
    SchemaEntry,
    SchemaSource,
    parse_avro_schema,
    parse_schema_mapping,
)
from apps.converter.src.infra.schema_registry import SchemaRegistryClient

logger = logging.getLogger(__name__)


def load_local_schema(source: LocalSchemaSource) -> AvroSchema:
    """
    Read and parse an `.avsc` file.

    Raises:
        SchemaResolutionError: If the file cannot be read or does not hold a valid schema.
    """
    try:
        with open(source.path, encoding="utf-8") as f:
            schema_str = f.read()
    except OSError as exc:
        logger.error(
            "Avro schema file could not be read",
            extra={"schema_path": source.path, "error": str(exc)},
        )
        raise SchemaResolutionError(f"Cannot read schema file '{source.path}': {exc}") from exc

    try:
        return parse_avro_schema(schema_str)
    except SchemaResolutionError as exc:
        raise SchemaResolutionError(f"Schema file '{source.path}': {exc}") from exc


class RegistrySchemaCache:
    """
    Memoizes registry lookups by subject.

    At most one fetch per subject is in flight; waiters on the same subject
    reuse its result. Failed fetches are not cached.
    """

    def __init__(self, client: SchemaRegistryClient) -> None:
        self._client = client
        self._cache: Dict[str, AvroSchema] = {}
        self._subject_locks: Dict[str, threading.Lock] = {}
        self._cache_lock = threading.Lock()

    def get(self, subject: str) -> AvroSchema:
        with self._cache_lock:
            cached = self._cache.get(subject)
        if cached is not None:
            return cached

        with self._get_subject_lock(subject):
            with self._cache_lock:
                cached = self._cache.get(subject)
            if cached is not None:
                return cached

            schema_str = self._client.get_latest_schema(subject)
            try:
                schema = parse_avro_schema(schema_str)
            except SchemaResolutionError as exc:
                raise SchemaResolutionError(f"Registry subject '{subject}': {exc}") from exc

            with self._cache_lock:
                self._cache[subject] = schema
            return schema

    def _get_subject_lock(self, subject: str) -> threading.Lock:
        with self._cache_lock:
            lock = self._subject_locks.get(subject)
            if lock is None:
                lock = threading.Lock()
                self._subject_locks[subject] = lock
            return lock


class SchemaTable:
    """
    Immutable mapping from source identifier to schema.

    Use `from_config` to build one; lookups are safe from any thread.
    """

    def __init__(
        self,
        entries: Dict[str, SchemaEntry],
        lazy_sources: Optional[Dict[str, RegistrySchemaSource]] = None,
        registry_cache: Optional[RegistrySchemaCache] = None,
    ) -> None:
        self._entries = dict(entries)
        self._lazy_sources = dict(lazy_sources or {})
        self._registry_cache = registry_cache

    @classmethod
    def from_config(
        cls,
        config: ConverterConfig,
        registry_client: Optional[SchemaRegistryClient] = None,
    ) -> "SchemaTable":
        """
        Parse the schema mapping and resolve every eager source.

        Args:
            config: Validated converter options.
            registry_client: Client used when a registry URL is configured.

        Raises:
            ConfigurationError: If the mapping is malformed.
            SchemaResolutionError: If an eager source cannot be resolved.
        """
        pairs: List[Tuple[str, SchemaSource]] = parse_schema_mapping(
            config.schemas, use_registry=config.uses_registry
        )

        registry_cache: Optional[RegistrySchemaCache] = None
        if config.uses_registry:
            if registry_client is None:
                registry_client = SchemaRegistryClient(
                    base_url=config.schema_registry_url,
                    logger=logging.getLogger(SchemaRegistryClient.__module__),
                    timeout_sec=config.schema_registry_timeout_sec,
                )
            registry_cache = RegistrySchemaCache(registry_client)

        entries: Dict[str, SchemaEntry] = {}
        lazy_sources: Dict[str, RegistrySchemaSource] = {}
        for identifier, source in pairs:
            if isinstance(source, RegistrySchemaSource):
                if config.schema_registry_lazy:
                    lazy_sources[identifier] = source
                    continue
                schema = registry_cache.get(source.subject)
            else:
                schema = load_local_schema(source)

            entries[identifier] = SchemaEntry(
                identifier=identifier,
                schema=schema,
                origin=source.origin,
                locator=source.locator,
            )
            logger.info(
                "Schema resolved",
                extra={
                    "identifier": identifier,
                    "origin": source.origin.value,
                    "locator": source.locator,
                    "schema_name": schema.fullname,
                },
            )

        return cls(entries, lazy_sources=lazy_sources, registry_cache=registry_cache)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries or identifier in self._lazy_sources

    def identifiers(self) -> List[str]:
        return list(self._entries) + list(self._lazy_sources)

    def entries(self) -> List[SchemaEntry]:
        """Entries resolved at construction; lazy registry sources are not listed."""
        return list(self._entries.values())

    def lookup(self, identifier: str) -> AvroSchema:
        """
        Return the schema bound to a source identifier.

        Raises:
            UnknownSourceError: If the identifier was never configured.
            SchemaResolutionError: If a lazily-resolved registry schema cannot be fetched.
        """
        entry = self._entries.get(identifier)
        if entry is not None:
            return entry.schema

        source = self._lazy_sources.get(identifier)
        if source is None:
            raise UnknownSourceError(identifier)
        return self._registry_cache.get(source.subject)
