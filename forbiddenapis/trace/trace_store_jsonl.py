from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator


class TraceStoreJSONL:
    """
    Append-only JSONL file; one event object per line. Several runs may share one file.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")

    def read(self, *, run_id: str | None = None) -> Iterator[dict[str, Any]]:
        if not self._path.exists():
            return
        with self._path.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                event = json.loads(line)
                if run_id is None or event.get("run_id") == run_id:
                    yield event
