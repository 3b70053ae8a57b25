import os
import tempfile
import unittest
from pathlib import Path

from forbiddenapis.core.fileset import GlobPattern, resolve_file_set


def _touch(root: Path, rel: str) -> None:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(b"\xca\xfe\xba\xbe")


class TestGlobPattern(unittest.TestCase):
    def test_double_star_matches_zero_or_more_segments(self) -> None:
        p = GlobPattern("**/*.class")
        self.assertTrue(p.matches("A.class"))
        self.assertTrue(p.matches("org/example/A.class"))
        self.assertFalse(p.matches("org/example/A.java"))

    def test_single_star_stays_within_segment(self) -> None:
        p = GlobPattern("org/*.class")
        self.assertTrue(p.matches("org/A.class"))
        self.assertFalse(p.matches("org/sub/A.class"))

    def test_question_mark_and_case_sensitivity(self) -> None:
        p = GlobPattern("?.class")
        self.assertTrue(p.matches("A.class"))
        self.assertFalse(p.matches("AB.class"))
        self.assertFalse(GlobPattern("a.class").matches("A.class"))

    def test_trailing_slash_means_everything_below(self) -> None:
        p = GlobPattern("gen/")
        self.assertTrue(p.matches("gen/A.class"))
        self.assertTrue(p.matches("gen/x/y/B.class"))
        self.assertFalse(p.matches("other/A.class"))

    def test_backslashes_are_separators(self) -> None:
        self.assertTrue(GlobPattern("org\\**\\*.class").matches("org/a/b/C.class"))


class TestResolveFileSet(unittest.TestCase):
    def test_default_include_selects_single_class(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td) / "out" / "classes"
            _touch(root, "A.class")
            self.assertEqual(resolve_file_set(root, ["**/*.class"]), ("A.class",))

    def test_empty_includes_fall_back_to_default(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            _touch(root, "A.class")
            (root / "notes.txt").write_text("x", encoding="utf-8")
            self.assertEqual(resolve_file_set(root, []), ("A.class",))

    def test_exclude_dominates_include(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            _touch(root, "a/Keep.class")
            _touch(root, "gen/Drop.class")
            out = resolve_file_set(root, ["**/*.class", "gen/Drop.class"], ["gen/**"])
            self.assertEqual(out, ("a/Keep.class",))

    def test_default_excludes_skip_scm_metadata(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            _touch(root, "A.class")
            _touch(root, ".git/objects/B.class")
            _touch(root, "CVS/C.class")
            self.assertEqual(resolve_file_set(root, ["**/*.class"]), ("A.class",))
            with_scm = resolve_file_set(root, ["**/*.class"], use_default_excludes=False)
            self.assertEqual(set(with_scm), {"A.class", ".git/objects/B.class", "CVS/C.class"})

    def test_order_is_deterministic(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            for rel in ("b/Z.class", "a/Y.class", "X.class", "a/sub/W.class"):
                _touch(root, rel)
            first = resolve_file_set(root, ["**/*.class"])
            self.assertEqual(first, ("X.class", "a/Y.class", "a/sub/W.class", "b/Z.class"))
            self.assertEqual(resolve_file_set(root, ["**/*.class"]), first)

    def test_missing_root_yields_empty_set(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            self.assertEqual(resolve_file_set(Path(td) / "missing", ["**/*.class"]), ())

    def test_symlinked_directory_loop_is_walked_once(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            _touch(root, "A.class")
            _touch(root, "org/B.class")
            try:
                os.symlink(root, root / "loop", target_is_directory=True)
                os.symlink(root, root / "org" / "up", target_is_directory=True)
            except (OSError, NotImplementedError):
                self.skipTest("symlinks not supported here")
            self.assertEqual(resolve_file_set(root, ["**/*.class"]), ("A.class", "org/B.class"))


if __name__ == "__main__":
    unittest.main()
