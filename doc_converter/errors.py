"""Error kinds raised while converting a single URL.

Every ``ConversionError`` is recorded against the URL that caused it and never
aborts the rest of the run. ``ConverterSetupError`` is the only error that is
fatal to a run; it is raised before any URL is processed.
"""


class ConversionError(Exception):
    """Base class for failures recorded against a single URL."""

    kind = "conversion_error"

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
        self.message = message


class URLValidationError(ConversionError):
    """URL could not be parsed or its hostname could not be resolved."""

    kind = "validation_error"


class SSRFBlockedError(ConversionError):
    """Hostname resolves (at least partially) to non-public address space."""

    kind = "ssrf_blocked"

    def __init__(self, url: str):
        super().__init__(url, "SSRF attack suspected: URL resolves to a non-public IP")


class FetchError(ConversionError):
    """Network failure, non-200 status or oversized body."""

    kind = "fetch_error"


class ParseError(ConversionError):
    """HTML could not be parsed."""

    kind = "parse_error"


class SelectorMissError(ConversionError):
    """Selector matched zero elements."""

    kind = "selector_miss"

    def __init__(self, url: str, selector: str):
        super().__init__(
            url, f"could not find content in {url} using selector '{selector}'"
        )
        self.selector = selector


class SerializationError(ConversionError):
    """Page metadata could not be serialized to YAML."""

    kind = "serialization_error"


class WriteError(ConversionError):
    """Output file could not be created or written."""

    kind = "write_error"


class ConverterSetupError(Exception):
    """A converter could not be constructed; no URLs were processed."""
