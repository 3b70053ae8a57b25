from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ForbiddenApisError(Exception):
    code: str
    message: str
    data: dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ConfigurationError(ForbiddenApisError):
    """Bad or missing user input, detected before any file is loaded."""


class ResourceError(ForbiddenApisError):
    """Filesystem or classpath access failure."""


class SignatureParseError(ForbiddenApisError):
    """Malformed signature source content."""


class ViolationError(ForbiddenApisError):
    """The scan succeeded and found forbidden API usage."""


class EngineFault(ForbiddenApisError):
    """Any other failure raised by the scanning engine."""


class UnsupportedRuntimeError(ForbiddenApisError):
    pass
