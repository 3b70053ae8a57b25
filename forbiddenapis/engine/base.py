from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

from forbiddenapis.core.classpath import ClassLoadingContext
from forbiddenapis.core.runtime_context import PolicyFlags


class Engine(Protocol):
    """
    Bytecode scanning engine consumed by the execution driver.

    Failure contract:
    - signature loading raises SignatureParseError for malformed content and OSError for I/O problems
    - register_class_file raises OSError when a class file cannot be read
    - execute raises ViolationError when forbidden API usage is found; anything else is an engine fault
    """

    def is_runtime_supported(self) -> bool: ...

    def register_suppress_annotation(self, pattern: str) -> None: ...

    def load_bundled_signatures(self, name: str, version_hint: Optional[str]) -> None: ...

    def load_inline_signatures(self, text: str) -> None: ...

    def load_signature_file(self, path: Path) -> None: ...

    def has_any_signatures_loaded(self) -> bool: ...

    def register_class_file(self, path: Path) -> None: ...

    def execute(self) -> None: ...


EngineFactory = Callable[[ClassLoadingContext, PolicyFlags, logging.Logger], Engine]

ENGINE_METHODS = (
    "is_runtime_supported",
    "register_suppress_annotation",
    "load_bundled_signatures",
    "load_inline_signatures",
    "load_signature_file",
    "has_any_signatures_loaded",
    "register_class_file",
    "execute",
)
