"""
Entrypoint for the converter service.

Validates the configured schema mapping end to end (files read, registry
subjects fetched, schemas translated) and reports the build manifest.
Exits non-zero when the converter cannot reach the READY state.
"""

import logging

from apps.converter.src.core.bootstrap import build_converter
from apps.converter.src.domain.errors import ConverterError
from libs.config import AppConfig
from libs.manifest import Manifest
from libs.observability import get_logger, init_observability


def main() -> None:
    """
    Main entrypoint for the converter service.
    Initializes observability and builds the converter from the environment.
    """
    config = AppConfig.load()
    init_observability(
        level=getattr(logging, config.service.log_level.upper(), logging.INFO),
        cfg=config.otel,
    )
    logger = get_logger("avro-converter")

    manifest = Manifest.load()
    logger.info("Starting converter\n%s", manifest.render())

    try:
        converter = build_converter(manifest=manifest)
    except ConverterError as exc:
        logger.exception("Converter failed to initialize", extra={"error": str(exc)})
        raise SystemExit(1) from exc

    logger.info(
        "Converter ready",
        extra={"identifiers": converter.schema_table.identifiers()},
    )


if __name__ == "__main__":
    main()
