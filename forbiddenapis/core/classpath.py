from __future__ import annotations

import logging
import os
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import ConfigurationError


log = logging.getLogger(__name__)


def _normalize_path(p: str) -> Path:
    # Deterministic normalization: expand env + ~ then make absolute (existence is not required).
    return Path(os.path.abspath(os.path.expandvars(os.path.expanduser(p))))


def to_classpath_entry(entry: str | os.PathLike[str]) -> Path:
    raw = os.fspath(entry)
    if not isinstance(raw, str) or not raw.strip():
        raise ConfigurationError(code="classpath.invalid", message="Classpath entry must be a non-empty path")
    if "\x00" in raw:
        raise ConfigurationError(
            code="classpath.invalid",
            message="The given classpath is invalid: entry contains a NUL character",
            data={"entry": raw},
        )
    path = _normalize_path(raw)
    try:
        path.as_uri()
    except ValueError as e:
        raise ConfigurationError(
            code="classpath.invalid",
            message=f"The given classpath is invalid: {raw}",
            data={"entry": raw},
        ) from e
    return path


def build_classpath(entries: Iterable[str | os.PathLike[str]], classes_directory: str | os.PathLike[str]) -> Tuple[Path, ...]:
    """
    Ordered class-loading roots: user entries as given, then the classes directory.

    The classes directory is appended even when a user entry points at the same place.
    Entries are not checked for existence; a missing root simply resolves nothing.
    """
    roots: List[Path] = [to_classpath_entry(e) for e in entries]
    roots.append(to_classpath_entry(classes_directory))
    return tuple(roots)


def split_classpath(values: Iterable[str], separator: str = os.pathsep) -> List[str]:
    out: List[str] = []
    for v in values:
        if not isinstance(v, str):
            continue
        out.extend(part for part in v.split(separator) if part)
    return out


class ClassLoadingContext:
    """
    Resolves class resources (e.g. `java/lang/String.class`) against ordered classpath roots.

    Directories are read directly; zip/jar archives are opened on demand. With `use_cache`
    the archive handles stay open until `close()`, otherwise every lookup opens and closes
    the archive. Use it as a context manager so handles are released on every exit path.
    """

    def __init__(self, classpath: Iterable[Path], *, use_cache: bool = True):
        self._roots: Tuple[Path, ...] = tuple(classpath)
        self._use_cache = use_cache
        self._archives: Dict[Path, zipfile.ZipFile] = {}
        self._closed = False

    @property
    def roots(self) -> Tuple[Path, ...]:
        return self._roots

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "ClassLoadingContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def find_resource(self, name: str) -> Optional[bytes]:
        """
        Return the bytes of the first root containing `name`, or None when no root has it.
        """
        if self._closed:
            raise ValueError("ClassLoadingContext is closed")
        rel = name.lstrip("/")
        for root in self._roots:
            if root.is_dir():
                candidate = root / rel
                if candidate.is_file():
                    return candidate.read_bytes()
                continue
            if root.is_file() and zipfile.is_zipfile(root):
                data = self._read_from_archive(root, rel)
                if data is not None:
                    return data
        return None

    def _read_from_archive(self, archive: Path, rel: str) -> Optional[bytes]:
        if not self._use_cache:
            with zipfile.ZipFile(archive) as zf:
                return self._read_entry(zf, rel)
        zf = self._archives.get(archive)
        if zf is None:
            zf = zipfile.ZipFile(archive)
            self._archives[archive] = zf
        return self._read_entry(zf, rel)

    @staticmethod
    def _read_entry(zf: zipfile.ZipFile, rel: str) -> Optional[bytes]:
        try:
            return zf.read(rel)
        except KeyError:
            return None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        archives = list(self._archives.values())
        self._archives.clear()
        for zf in archives:
            try:
                zf.close()
            except Exception as e:  # noqa: BLE001
                # Best-effort release; never masks the outcome of the run.
                log.debug("Failed to close classpath archive %s: %r", zf.filename, e)
