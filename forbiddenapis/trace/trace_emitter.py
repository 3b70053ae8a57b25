from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from .trace_store_jsonl import TraceStoreJSONL


class TraceEmitter:
    """
    Emits audit-run events. Without a store every emit is a no-op.
    """

    def __init__(self, store: Optional[TraceStoreJSONL], run_id: str):
        self._store = store
        self._run_id = run_id

    @property
    def enabled(self) -> bool:
        return self._store is not None

    def emit(
        self,
        event_type: str,
        *,
        step: str | None = None,
        message: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        if self._store is None:
            return
        event: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "run_id": self._run_id,
            "event_type": event_type,
        }
        if step is not None:
            event["step"] = step
        if message is not None:
            event["message"] = message
        if data is not None:
            event["data"] = data

        self._store.append(event)
