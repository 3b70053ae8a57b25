from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Sequence, Set, Tuple


DEFAULT_INCLUDE = "**/*.class"

# Classic directory-scanner default excludes: SCM metadata, editor backups and OS droppings.
DEFAULT_EXCLUDES: Tuple[str, ...] = (
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/._*",
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    "**/RCS",
    "**/RCS/**",
    "**/SCCS",
    "**/SCCS/**",
    "**/vssver.scc",
    "**/project.pj",
    "**/.svn",
    "**/.svn/**",
    "**/.arch-ids",
    "**/.arch-ids/**",
    "**/.bzr",
    "**/.bzr/**",
    "**/.MySCMServerInfo",
    "**/.DS_Store",
    "**/.metadata",
    "**/.metadata/**",
    "**/.hg",
    "**/.hg/**",
    "**/.hgignore",
    "**/.git",
    "**/.git/**",
    "**/.gitignore",
    "**/.gitattributes",
    "**/BitKeeper",
    "**/BitKeeper/**",
    "**/ChangeSet",
    "**/ChangeSet/**",
    "**/_darcs",
    "**/_darcs/**",
    "**/.darcsrepo",
    "**/.darcsrepo/**",
    "**/-darcs-backup*",
    "**/.darcs-temp-mail",
)


def _split(path: str) -> List[str]:
    return [s for s in path.replace("\\", "/").split("/") if s]


@lru_cache(maxsize=512)
def _segment_regex(segment: str) -> "re.Pattern[str]":
    out = []
    for ch in segment:
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(ch))
    return re.compile("".join(out))


class GlobPattern:
    """
    Ant-style path pattern.

    - `*` matches within one path segment, `?` matches one character
    - `**` matches any number of segments (including none)
    - a trailing `/` means "everything below" (`dir/` == `dir/**`)
    - matching is case-sensitive
    """

    def __init__(self, pattern: str):
        self.pattern = pattern
        normalized = pattern.replace("\\", "/")
        if normalized.endswith("/"):
            normalized += "**"
        segments: List[str] = []
        for seg in _split(normalized):
            # Collapse runs of `**`; they match the same paths as a single one.
            if seg == "**" and segments and segments[-1] == "**":
                continue
            segments.append(seg)
        self._segments = tuple(segments)

    def __repr__(self) -> str:
        return f"GlobPattern({self.pattern!r})"

    def matches(self, rel_path: str) -> bool:
        return _match(self._segments, tuple(_split(rel_path)))


@lru_cache(maxsize=4096)
def _match(pattern: Tuple[str, ...], path: Tuple[str, ...]) -> bool:
    if not pattern:
        return not path
    head = pattern[0]
    if head == "**":
        rest = pattern[1:]
        return any(_match(rest, path[i:]) for i in range(len(path) + 1))
    if not path:
        return False
    if not _segment_regex(head).fullmatch(path[0]):
        return False
    return _match(pattern[1:], path[1:])


def _compile(patterns: Iterable[str]) -> List[GlobPattern]:
    return [GlobPattern(p) for p in patterns if isinstance(p, str) and p.strip()]


def _iter_files(root: Path) -> Iterable[str]:
    # Deterministic DFS with sorted children; files of a directory come before its subdirectories.
    # Directories are keyed by (device, inode) so symlinked loops are entered once.
    root_stat = root.stat()
    seen: Set[Tuple[int, int]] = {(root_stat.st_dev, root_stat.st_ino)}
    stack: List[Tuple[Path, str]] = [(root, "")]
    while stack:
        cur, prefix = stack.pop()
        children = sorted(cur.iterdir(), key=lambda p: p.name)
        dirs_to_visit: List[Tuple[Path, str]] = []
        for ch in children:
            rel = f"{prefix}{ch.name}"
            if ch.is_dir():
                st = ch.stat()
                key = (st.st_dev, st.st_ino)
                if key in seen:
                    continue
                seen.add(key)
                dirs_to_visit.append((ch, rel + "/"))
            elif ch.is_file():
                yield rel
        for d in reversed(dirs_to_visit):
            stack.append(d)


def resolve_file_set(
    root: Path,
    includes: Sequence[str],
    excludes: Sequence[str] = (),
    *,
    use_default_excludes: bool = True,
) -> Tuple[str, ...]:
    """
    Enumerate files under `root` matching at least one include and no exclude.

    Returns `/`-separated paths relative to `root` in a deterministic order.
    An empty result is not an error here; callers decide whether it is fatal.
    """
    include_patterns = _compile(includes) or [GlobPattern(DEFAULT_INCLUDE)]
    exclude_patterns = _compile(excludes)
    if use_default_excludes:
        exclude_patterns.extend(_compile(DEFAULT_EXCLUDES))

    if not root.is_dir():
        return ()

    selected: List[str] = []
    for rel in _iter_files(root):
        if not any(p.matches(rel) for p in include_patterns):
            continue
        if any(p.matches(rel) for p in exclude_patterns):
            continue
        selected.append(rel)
    return tuple(selected)
