"""
Schema Registry lookups.

Only the "latest version" lookup is needed by the converter. Requests go
through confluent-kafka's SchemaRegistryClient; this wrapper bounds them with
a timeout, records metrics and maps every failure to SchemaResolutionError.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from confluent_kafka.schema_registry import SchemaRegistryClient as ConfluentRegistryClient
from confluent_kafka.schema_registry.error import SchemaRegistryError

from apps.converter.src.domain.errors import SchemaResolutionError
from apps.converter.src.infra.metrics import get_registry_instruments

AVRO_SCHEMA_TYPE: str = "AVRO"


class SchemaRegistryClient:
    """
    Latest-version schema lookups against a Schema Registry.

    Every request is bounded by `timeout_sec`; a timeout surfaces as
    SchemaResolutionError like any other failed lookup.
    """

    def __init__(
        self,
        base_url: str,
        logger: logging.Logger,
        timeout_sec: float = 5.0,
        client: Optional[ConfluentRegistryClient] = None,
    ) -> None:
        """
        Create a new SchemaRegistryClient.

        Args:
            base_url: Base URL for the registry (e.g. http://schema-registry:8081).
            logger: Logger instance for structured logging.
            timeout_sec: Timeout for each registry request, in seconds.
            client: Preconfigured confluent-kafka client, mainly for tests.
        """
        self._base_url = base_url.rstrip("/")
        self._log = logger
        self._timeout = timeout_sec
        self._client = client or ConfluentRegistryClient({"url": self._base_url, "timeout": timeout_sec})
        self._fetch_counter, self._fetch_latency_hist = get_registry_instruments()

    @property
    def base_url(self) -> str:
        return self._base_url

    def get_latest_schema(self, subject: str) -> str:
        """
        Fetch the schema text of the latest version registered under a subject.

        Args:
            subject: Registry subject name.

        Returns:
            Schema text of the latest registered version.

        Raises:
            SchemaResolutionError: On timeout, connection failure, a registry
                error response or a non-Avro schema.
        """
        start = time.perf_counter()
        try:
            registered = self._client.get_latest_version(subject)
        except SchemaRegistryError as exc:
            self._log.error(
                "Schema registry returned an error",
                extra={
                    "subject": subject,
                    "status_code": exc.http_status_code,
                    "error_code": exc.error_code,
                    "error": exc.error_message,
                },
            )
            raise SchemaResolutionError(
                f"Schema registry returned {exc.http_status_code} for subject '{subject}': {exc.error_message}"
            ) from exc
        except Exception as exc:  # noqa: BLE001
            self._log.error(
                "Schema registry request failed",
                extra={
                    "subject": subject,
                    "url": self._base_url,
                    "timeout_sec": self._timeout,
                    "error": str(exc),
                },
            )
            raise SchemaResolutionError(
                f"Failed to fetch subject '{subject}' within {self._timeout}s: {exc}"
            ) from exc
        finally:
            self._fetch_counter.add(1, {"subject": subject})
            self._fetch_latency_hist.record((time.perf_counter() - start) * 1000)

        schema = registered.schema
        schema_type = schema.schema_type or AVRO_SCHEMA_TYPE
        if schema_type != AVRO_SCHEMA_TYPE:
            raise SchemaResolutionError(
                f"Subject '{subject}' holds a {schema_type} schema; only AVRO is supported"
            )
        if not schema.schema_str:
            raise SchemaResolutionError(f"Schema registry response for '{subject}' has no schema")

        self._log.info(
            "Fetched latest schema",
            extra={"subject": subject, "version": registered.version},
        )
        return schema.schema_str
