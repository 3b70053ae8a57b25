import unittest
import warnings

from forbiddenapis.contract_store import ContractStore
from forbiddenapis.resources import contracts_schemas_dir


class TestContractStoreRegistry(unittest.TestCase):
    def test_validate_does_not_use_refresolver(self) -> None:
        """
        jsonschema.RefResolver is deprecated; ContractStore should resolve the build file's task $ref without it.
        """
        store = ContractStore(contracts_schemas_dir())
        store.load()

        instance = {"tasks": {"forbiddenApis": {"classes_dir": "build/classes"}}}

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            errs = store.validate("task_file.schema.json", instance)

        self.assertEqual(errs, [])
        dep_warnings = [w for w in caught if issubclass(w.category, DeprecationWarning)]
        self.assertEqual(dep_warnings, [])

    def test_referenced_schema_errors_are_reported_with_path(self) -> None:
        store = ContractStore(contracts_schemas_dir())
        store.load()
        errs = store.validate("task_file.schema.json", {"tasks": {"t": {"classes_dir": "c", "ignore_failures": "yes"}}})
        self.assertEqual(len(errs), 1)
        self.assertTrue(errs[0].startswith("tasks/t/ignore_failures: "))

    def test_unknown_schema_raises(self) -> None:
        store = ContractStore(contracts_schemas_dir())
        store.load()
        with self.assertRaises(KeyError):
            store.validate("nope.schema.json", {})


if __name__ == "__main__":
    unittest.main()
