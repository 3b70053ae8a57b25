import logging
import os
import unittest

from forbiddenapis.core.classpath import ClassLoadingContext
from forbiddenapis.core.errors import ConfigurationError, SignatureParseError
from forbiddenapis.core.runtime_context import PolicyFlags
from forbiddenapis.engine.loading import ENGINE_ENV_VAR, load_engine_factory, resolve_engine_spec
from forbiddenapis.engine.testing import RecordingEngine


class TestEngineLoading(unittest.TestCase):
    def setUp(self) -> None:
        self._old_engine = os.environ.pop(ENGINE_ENV_VAR, None)

    def tearDown(self) -> None:
        if self._old_engine is None:
            os.environ.pop(ENGINE_ENV_VAR, None)
        else:
            os.environ[ENGINE_ENV_VAR] = self._old_engine

    def test_load_class_spec(self) -> None:
        factory = load_engine_factory("forbiddenapis.engine.testing:RecordingEngine")
        with ClassLoadingContext([]) as loader:
            engine = factory(loader, PolicyFlags(), logging.getLogger("test"))
        self.assertIsInstance(engine, RecordingEngine)
        self.assertIs(engine.context, loader)

    def test_invalid_specs(self) -> None:
        for spec in ("", "no_colon", ":Engine", "module:"):
            with self.assertRaises(ConfigurationError) as ctx:
                load_engine_factory(spec)
            self.assertEqual(ctx.exception.code, "engine.invalid")

    def test_missing_module_and_attribute(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            load_engine_factory("forbiddenapis_no_such_module:Engine")
        self.assertEqual(ctx.exception.code, "engine.not_found")
        with self.assertRaises(ConfigurationError) as ctx:
            load_engine_factory("forbiddenapis.engine.testing:NoSuchEngine")
        self.assertEqual(ctx.exception.code, "engine.not_found")

    def test_object_without_engine_methods_rejected(self) -> None:
        factory = load_engine_factory("forbiddenapis.core.runtime_context:RunOutcome")
        with ClassLoadingContext([]) as loader:
            with self.assertRaises(ConfigurationError) as ctx:
                factory(loader, PolicyFlags(), logging.getLogger("test"))
        self.assertEqual(ctx.exception.code, "engine.invalid")

    def test_non_callable_rejected(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            load_engine_factory("forbiddenapis.engine.loading:ENGINE_ENV_VAR")
        self.assertEqual(ctx.exception.code, "engine.invalid")

    def test_resolve_engine_spec_precedence(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            resolve_engine_spec(None)
        self.assertEqual(ctx.exception.code, "engine.missing")
        os.environ[ENGINE_ENV_VAR] = "env.module:Engine"
        self.assertEqual(resolve_engine_spec(None), "env.module:Engine")
        self.assertEqual(resolve_engine_spec(" explicit.module:Engine "), "explicit.module:Engine")


class TestRecordingEngine(unittest.TestCase):
    def _engine(self, **policy) -> RecordingEngine:
        return RecordingEngine(ClassLoadingContext([]), PolicyFlags(**policy))

    def test_bundled_names(self) -> None:
        engine = self._engine()
        engine.load_bundled_signatures("jdk-unsafe", "11")
        engine.load_bundled_signatures("jdk-deprecated-1.8", None)
        engine.load_bundled_signatures("commons-io-unsafe", None)
        self.assertTrue(engine.has_any_signatures_loaded())
        with self.assertRaises(SignatureParseError):
            engine.load_bundled_signatures("jdk-unsafe", None)
        with self.assertRaises(SignatureParseError):
            engine.load_bundled_signatures("no-such-bundle-1.8", "1.8")

    def test_inline_signatures_skip_comments_and_directives(self) -> None:
        engine = self._engine()
        engine.load_inline_signatures("# comment\n@defaultMessage nope\n\n")
        self.assertFalse(engine.has_any_signatures_loaded())
        engine.load_inline_signatures("java.lang.String#intern()\n")
        self.assertEqual(engine.signature_count, 1)

    def test_internal_runtime_forbidden_counts(self) -> None:
        self.assertTrue(self._engine(internal_runtime_forbidden=True).has_any_signatures_loaded())


if __name__ == "__main__":
    unittest.main()
