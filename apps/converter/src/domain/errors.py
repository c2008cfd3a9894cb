"""
Error taxonomy for the converter.

Every failure is a fail-fast signal to the hosting pipeline, which decides
whether to drop, dead-letter or halt. Nothing here is retried internally.
"""


class ConverterError(Exception):
    """Base class for all converter failures."""


class ConfigurationError(ConverterError):
    """Required configuration is missing or malformed; the converter never becomes ready."""


class SchemaResolutionError(ConverterError):
    """A schema file could not be read or parsed, or the registry lookup failed."""


class UnknownSourceError(ConverterError):
    """The source identifier was never configured."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"No schema configured for source '{identifier}'")
        self.identifier = identifier


class PayloadDecodeError(ConverterError):
    """The payload does not decode against the resolved schema."""


class SchemaTranslationError(ConverterError):
    """The wire schema holds a construct with no Connect representation."""


class ConverterNotReadyError(ConverterError):
    """`convert` was called before `initialize`."""
