from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TaskFailure(Exception):
    """
    Build-system failure raised by a task action. `code` carries the underlying audit error code.
    """

    task: str
    message: str
    code: Optional[str] = None

    def __str__(self) -> str:
        return self.message


class InvalidUserDataError(TaskFailure):
    pass


class ResourceFailure(TaskFailure):
    pass


class TaskExecutionError(TaskFailure):
    pass
