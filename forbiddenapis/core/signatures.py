from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Set, Tuple

from .runtime_context import BundledSignatures, InlineSignatures, SignatureSource, SignaturesFile


class SignatureSourceAggregator:
    """
    Collects signature sources in declaration order.

    Notes:
    - Only records intent; file contents and bundled names are interpreted by the engine.
    - All sources are additive: anything forbidden by one source is forbidden globally.
    - Bundled names and signature files collapse to their first occurrence; inline text is kept as declared.
    """

    def __init__(self) -> None:
        self._sources: List[SignatureSource] = []
        self._bundled_names: Set[str] = set()
        self._files: Set[Path] = set()
        self._missing_version_hint = False

    def __len__(self) -> int:
        return len(self._sources)

    @property
    def missing_version_hint(self) -> bool:
        return self._missing_version_hint

    def add_bundled(self, name: str, version_hint: Optional[str] = None) -> None:
        name = name.strip()
        if not name or name in self._bundled_names:
            return
        hint = version_hint.strip() if isinstance(version_hint, str) and version_hint.strip() else None
        if hint is None:
            self._missing_version_hint = True
        self._bundled_names.add(name)
        self._sources.append(BundledSignatures(name=name, version_hint=hint))

    def add_inline(self, text: str) -> None:
        if not text.strip():
            return
        self._sources.append(InlineSignatures(text=text))

    def add_file(self, path: str | os.PathLike[str]) -> None:
        p = Path(os.path.abspath(os.path.expanduser(os.fspath(path))))
        if p in self._files:
            return
        self._files.add(p)
        self._sources.append(SignaturesFile(path=p))

    def sources(self) -> Tuple[SignatureSource, ...]:
        return tuple(self._sources)
