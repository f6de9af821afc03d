from __future__ import annotations

from pathlib import Path
import tempfile
import textwrap
import unittest

from buildrules import BuildContext, ConfigurationError, CppStandard, PCHMode
from buildrules.config_loader import ConfigurationStore, GlobalConfig, rule_set_from_mapping
from buildrules.resolver import resolve_rule_set


class ConfigurationStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.config_dir = self.root / "config"
        self.modules_dir = self.config_dir / "modules"
        self.modules_dir.mkdir(parents=True, exist_ok=True)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _write(self, relative: str, content: str) -> None:
        (self.config_dir / relative).write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")

    def test_loads_toml_module(self) -> None:
        self._write(
            "config.toml",
            """
            [global]
            default_pch_mode = "NoSharedPCHs"
            default_cpp_standard = "Cpp17"
            log_level = "debug"
            """,
        )
        self._write(
            "modules/Drift.toml",
            """
            [module]
            name = "Drift"

            [base]
            public_include_paths = ["Drift/Drift/Public"]
            public_dependencies = ["Core", "CoreUObject"]

            [[rules]]
            platforms = ["Mac", "IOS"]
            frameworks = ["Security"]
            note = "keychain access"

            [[rules]]
            platforms = ["Android"]
            private_dependencies = ["Launch"]

            [rules.receipt_properties]
            AndroidPlugin = "Drift_APL.xml"

            [[rules]]
            min_host_version = "4.19"
            definitions = ["WITH_ANALYTICS_EVENT_ATTRIBUTE_TYPES"]
            """,
        )

        store = ConfigurationStore.from_directory(self.root)
        self.assertEqual(store.global_config.default_pch_mode, PCHMode.NO_SHARED_PCHS)
        self.assertEqual(store.global_config.default_cpp_standard, CppStandard.CPP17)
        self.assertEqual(store.global_config.log_level, "debug")
        self.assertEqual(list(store.list_modules()), ["Drift"])

        resolver = store.resolver()
        mac = resolver.resolve("Drift", BuildContext.create("Mac", "4.20"))
        self.assertEqual(mac.frameworks, ("Security",))
        self.assertEqual(mac.definition_flags(), ["WITH_ANALYTICS_EVENT_ATTRIBUTE_TYPES"])
        self.assertIs(mac.pch_mode, PCHMode.NO_SHARED_PCHS)
        self.assertIs(mac.cpp_standard, CppStandard.CPP17)

        android = resolver.resolve("Drift", BuildContext.create("Android", "4.17"))
        self.assertEqual(android.private_dependencies, ("Launch",))
        self.assertEqual(android.receipt_properties, (("AndroidPlugin", "Drift_APL.xml"),))
        self.assertEqual(android.definitions, ())

    def test_supports_json_and_yaml_modules(self) -> None:
        self._write(
            "modules/RapidJson.json",
            """
            {
                "module": {"name": "RapidJson", "faster_without_unity": true},
                "base": {"pch_mode": "NoSharedPCHs", "public_dependencies": ["Core", "HTTP"]},
                "rules": [
                    {"platforms": ["Win64", "PS4"], "definitions": {"RAPIDJSON_HAS_CXX11_RVALUE_REFS": 1}}
                ]
            }
            """,
        )
        self._write(
            "modules/DriftEditor.yaml",
            """
            module:
              name: DriftEditor
              editor_only: true
            base:
              private_dependencies: [Core, UnrealEd]
              dynamically_loaded_modules: [Settings]
            """,
        )

        store = ConfigurationStore.from_directory(self.root)
        self.assertEqual(sorted(store.list_modules()), ["DriftEditor", "RapidJson"])
        self.assertTrue(store.modules["DriftEditor"].editor_only)
        self.assertTrue(store.modules["RapidJson"].faster_without_unity)

        descriptor = store.resolver().resolve("RapidJson", BuildContext.create("PS4", "4.20"))
        self.assertEqual(descriptor.definition_flags(), ["RAPIDJSON_HAS_CXX11_RVALUE_REFS=1"])
        self.assertIs(descriptor.pch_mode, PCHMode.NO_SHARED_PCHS)

    def test_missing_config_directory(self) -> None:
        with self.assertRaises(FileNotFoundError):
            ConfigurationStore.from_directory(self.root / "elsewhere")

    def test_rejects_duplicate_formats(self) -> None:
        self._write("modules/Demo.toml", '[module]\nname = "Demo"')
        self._write("modules/Demo.json", '{"module": {"name": "Demo"}}')
        with self.assertRaises(ValueError):
            ConfigurationStore.from_directory(self.root)

    def test_rejects_same_module_in_two_files(self) -> None:
        self._write("modules/First.toml", '[module]\nname = "Demo"')
        self._write("modules/Second.toml", '[module]\nname = "Demo"')
        with self.assertRaises(ConfigurationError):
            ConfigurationStore.from_directory(self.root)

    def test_invalid_version_gate_fails_at_load(self) -> None:
        self._write(
            "modules/Demo.toml",
            """
            [module]
            name = "Demo"

            [[rules]]
            min_host_version = "4.-1"
            definitions = ["NEVER"]
            """,
        )
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigurationStore.from_directory(self.root)
        self.assertIn("module 'Demo' rule #1", str(ctx.exception))

    def test_unquoted_version_gate_is_rejected(self) -> None:
        self._write(
            "modules/Demo.toml",
            """
            [module]
            name = "Demo"

            [[rules]]
            min_host_version = 4.20
            definitions = ["NEW"]
            """,
        )
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigurationStore.from_directory(self.root)
        self.assertIn("module 'Demo' rule #1.min_host_version must be a quoted", str(ctx.exception))

    def test_string_flag_is_rejected(self) -> None:
        self._write(
            "modules/Demo.yaml",
            """
            module:
              name: Demo
              editor_only: "no"
            """,
        )
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigurationStore.from_directory(self.root)
        self.assertIn("module.editor_only must be true or false", str(ctx.exception))

    def test_non_mapping_file_is_rejected(self) -> None:
        self._write("modules/Demo.yaml", "- Core\n- Json")
        with self.assertRaises(ConfigurationError) as ctx:
            ConfigurationStore.from_directory(self.root)
        self.assertIn("must contain a mapping at the root", str(ctx.exception))


class RuleSetFromMappingTests(unittest.TestCase):
    def test_requires_module_section(self) -> None:
        with self.assertRaises(ConfigurationError):
            rule_set_from_mapping({"base": {}})

    def test_rejects_unknown_payload_keys(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            rule_set_from_mapping({"module": {"name": "Demo"}, "base": {"include_paths": ["x"]}})
        self.assertIn("include_paths", str(ctx.exception))

    def test_base_cannot_be_gated(self) -> None:
        with self.assertRaises(ConfigurationError):
            rule_set_from_mapping({"module": {"name": "Demo"}, "base": {"platforms": ["Mac"]}})

    def test_empty_platform_list_is_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            rule_set_from_mapping({"module": {"name": "Demo"}, "rules": [{"platforms": [], "frameworks": ["Security"]}]})

    def test_definition_table_forms(self) -> None:
        rule_set = rule_set_from_mapping(
            {"module": {"name": "Demo"}, "base": {"definitions": {"FLAG": True, "LEVEL": 2}}}
        )
        self.assertEqual([definition.render() for definition in rule_set.base.definitions], ["FLAG", "LEVEL=2"])

    def test_numeric_version_gates_are_rejected(self) -> None:
        for raw in (4.2, 4, True):
            with self.subTest(raw=raw):
                with self.assertRaises(ConfigurationError):
                    rule_set_from_mapping(
                        {"module": {"name": "Demo"}, "rules": [{"min_host_version": raw, "definitions": ["NEW"]}]}
                    )

    def test_version_gate_as_pair(self) -> None:
        rule_set = rule_set_from_mapping(
            {"module": {"name": "Demo"}, "rules": [{"min_host_version": [4, 20], "definitions": ["NEW"]}]}
        )
        older = resolve_rule_set(rule_set, BuildContext.create("Win64", "4.5"))
        newer = resolve_rule_set(rule_set, BuildContext.create("Win64", "4.20"))
        self.assertEqual(older.definition_flags(), [])
        self.assertEqual(newer.definition_flags(), ["NEW"])

    def test_module_flags_must_be_booleans(self) -> None:
        for key in ("faster_without_unity", "editor_only"):
            for raw in ("false", "no", 0, 1):
                with self.subTest(key=key, raw=raw):
                    with self.assertRaises(ConfigurationError):
                        rule_set_from_mapping({"module": {"name": "Demo", key: raw}})

    def test_module_flags(self) -> None:
        rule_set = rule_set_from_mapping({"module": {"name": "Demo", "faster_without_unity": False, "editor_only": True}})
        self.assertFalse(rule_set.faster_without_unity)
        self.assertTrue(rule_set.editor_only)
        self.assertFalse(rule_set_from_mapping({"module": {"name": "Other"}}).editor_only)


class GlobalConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        config = GlobalConfig.from_mapping({})
        self.assertIs(config.default_pch_mode, PCHMode.USE_EXPLICIT_OR_SHARED_PCHS)
        self.assertIs(config.default_cpp_standard, CppStandard.CPP14)
        self.assertEqual(config.log_level, "info")
        self.assertIsNone(config.log_file)

    def test_rejects_unknown_mode(self) -> None:
        with self.assertRaises(ConfigurationError):
            GlobalConfig.from_mapping({"global": {"default_pch_mode": "Whatever"}})

    def test_rejects_non_table_global_section(self) -> None:
        with self.assertRaises(ConfigurationError):
            GlobalConfig.from_mapping({"global": ["info"]})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
