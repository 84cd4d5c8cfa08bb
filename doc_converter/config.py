"""Runtime configuration for the converter."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

DEFAULT_TIMEOUT = 5.0
MAX_BODY_SIZE = 5 * 1024 * 1024  # 5 MiB
DEFAULT_MAX_WORKERS = min(32, (os.cpu_count() or 1) * 4)
DEFAULT_USER_AGENT = "doc-converter/1.0 (+https://github.com/doc-converter)"

DOWNLOADS_DIR = "tmp/downloads"
DB_PATH = "jobs.db"


class ConverterConfig(BaseModel):
    """HTTP and concurrency settings shared by every worker of a run."""

    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    max_body_size: int = Field(default=MAX_BODY_SIZE, gt=0)
    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1)
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConverterConfig":
        """Build a config from ``DOC_CONVERTER_*`` environment variables.

        Unset variables keep their defaults.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for field, name in (
            ("timeout", "DOC_CONVERTER_TIMEOUT"),
            ("max_body_size", "DOC_CONVERTER_MAX_BODY_SIZE"),
            ("max_workers", "DOC_CONVERTER_MAX_WORKERS"),
            ("user_agent", "DOC_CONVERTER_USER_AGENT"),
        ):
            value = environ.get(name)
            if value:
                values[field] = value
        return cls(**values)
