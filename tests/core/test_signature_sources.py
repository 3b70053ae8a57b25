import unittest
from pathlib import Path

from forbiddenapis.core.runtime_context import BundledSignatures, InlineSignatures, SignaturesFile
from forbiddenapis.core.signatures import SignatureSourceAggregator


class TestSignatureSourceAggregator(unittest.TestCase):
    def test_duplicate_bundled_name_is_kept_once(self) -> None:
        agg = SignatureSourceAggregator()
        agg.add_bundled("jdk-unsafe", "11")
        agg.add_bundled("jdk-unsafe", "17")
        self.assertEqual(agg.sources(), (BundledSignatures(name="jdk-unsafe", version_hint="11"),))

    def test_declaration_order_is_preserved(self) -> None:
        agg = SignatureSourceAggregator()
        agg.add_inline("java.lang.System#exit(int)\n")
        agg.add_bundled("jdk-deprecated", "1.8")
        agg.add_file("sigs.txt")
        kinds = [type(s) for s in agg.sources()]
        self.assertEqual(kinds, [InlineSignatures, BundledSignatures, SignaturesFile])

    def test_files_dedup_by_absolute_path(self) -> None:
        agg = SignatureSourceAggregator()
        agg.add_file("sigs.txt")
        agg.add_file(Path("sigs.txt").absolute())
        self.assertEqual(len(agg), 1)
        self.assertTrue(agg.sources()[0].path.is_absolute())

    def test_blank_inline_text_is_ignored(self) -> None:
        agg = SignatureSourceAggregator()
        agg.add_inline("  \n")
        self.assertEqual(len(agg), 0)

    def test_missing_version_hint_is_flagged(self) -> None:
        agg = SignatureSourceAggregator()
        agg.add_bundled("jdk-unsafe-1.8", "1.8")
        self.assertFalse(agg.missing_version_hint)
        agg.add_bundled("jdk-system-out", None)
        self.assertTrue(agg.missing_version_hint)


if __name__ == "__main__":
    unittest.main()
