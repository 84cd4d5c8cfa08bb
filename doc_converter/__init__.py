"""Web page to Markdown converter package."""

from .config import ConverterConfig
from .converter import ConversionRun, Converter
from .errors import (
    ConversionError,
    ConverterSetupError,
    FetchError,
    ParseError,
    SelectorMissError,
    SerializationError,
    SSRFBlockedError,
    URLValidationError,
    WriteError,
)
from .models import (
    ConversionJob,
    ConversionRequest,
    ConversionResult,
    ConversionSummary,
    JobCreate,
    JobStats,
)
from .queue import JobQueue, JobRecord

__all__ = [
    "ConverterConfig",
    "Converter",
    "ConversionRun",
    "ConversionError",
    "ConverterSetupError",
    "FetchError",
    "ParseError",
    "SelectorMissError",
    "SerializationError",
    "SSRFBlockedError",
    "URLValidationError",
    "WriteError",
    "ConversionJob",
    "ConversionRequest",
    "ConversionResult",
    "ConversionSummary",
    "JobCreate",
    "JobStats",
    "JobQueue",
    "JobRecord",
]
