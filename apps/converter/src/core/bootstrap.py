"""
Bootstrap wiring for the converter service.

Responsible for:
- Reading converter options from the environment
- Collecting the build manifest once
- Constructing an initialized AvroConverter
"""

from typing import Final, Optional

from apps.converter.src.core.config import ConverterSettings, get_converter_settings
from apps.converter.src.service.converter import AvroConverter
from libs.manifest import Manifest


def build_converter(
    settings: Optional[ConverterSettings] = None,
    manifest: Optional[Manifest] = None,
) -> AvroConverter:
    """
    Build a fully initialized AvroConverter instance.

    Args:
        settings: Converter options; read from the environment when omitted.
        manifest: Build manifest; collected from package metadata when omitted.

    Returns:
        AvroConverter: converter in the READY state.
    """
    converter_settings: Final[ConverterSettings] = settings or get_converter_settings()

    converter = AvroConverter(manifest=manifest or Manifest.load())
    converter.initialize(converter_settings.to_config_map())
    return converter
