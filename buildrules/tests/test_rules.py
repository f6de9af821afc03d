from __future__ import annotations

import unittest

from buildrules import (
    ConfigurationError,
    CppStandard,
    Definition,
    ModuleRuleSet,
    PCHMode,
    Rule,
    RulePayload,
    when,
)


class DefinitionTests(unittest.TestCase):
    def test_parse_plain_and_valued(self) -> None:
        self.assertEqual(Definition.parse("WITH_FEATURE"), Definition("WITH_FEATURE"))
        self.assertEqual(Definition.parse("LEVEL=2"), Definition("LEVEL", "2"))
        self.assertEqual(Definition.parse({"name": "LEVEL", "value": 3}), Definition("LEVEL", "3"))

    def test_render(self) -> None:
        self.assertEqual(Definition("A").render(), "A")
        self.assertEqual(str(Definition("A", "1")), "A=1")

    def test_invalid_names(self) -> None:
        for raw in ("", "1ABC", "HAS SPACE", "=1"):
            with self.subTest(raw=raw):
                with self.assertRaises(ConfigurationError):
                    Definition.parse(raw)


class RulePayloadTests(unittest.TestCase):
    def test_normalizes_fields(self) -> None:
        payload = RulePayload(
            public_dependencies=("Core", "Core", "Json"),
            definitions=("A=1", "B"),  # type: ignore[arg-type]
            pch_mode="nosharedpchs",  # type: ignore[arg-type]
            cpp_standard="Cpp17",  # type: ignore[arg-type]
        )
        self.assertEqual(payload.public_dependencies, ("Core", "Json"))
        self.assertEqual(payload.definitions, (Definition("A", "1"), Definition("B")))
        self.assertIs(payload.pch_mode, PCHMode.NO_SHARED_PCHS)
        self.assertIs(payload.cpp_standard, CppStandard.CPP17)

    def test_names_are_case_sensitive(self) -> None:
        payload = RulePayload(private_dependencies=("HTTP", "Http"))
        self.assertEqual(payload.private_dependencies, ("HTTP", "Http"))

    def test_rejects_single_string_for_list_field(self) -> None:
        with self.assertRaises(ConfigurationError):
            RulePayload(frameworks="Security")  # type: ignore[arg-type]

    def test_rejects_empty_entries(self) -> None:
        with self.assertRaises(ConfigurationError):
            RulePayload(public_include_paths=("",))

    def test_rejects_conflicting_definition_in_one_payload(self) -> None:
        with self.assertRaises(ConfigurationError):
            RulePayload(definitions=("LEVEL=1", "LEVEL=2"))  # type: ignore[arg-type]

    def test_rejects_unknown_pch_mode(self) -> None:
        with self.assertRaises(ConfigurationError):
            RulePayload(pch_mode="Sometimes")  # type: ignore[arg-type]

    def test_rejects_malformed_receipt_property(self) -> None:
        with self.assertRaises(ConfigurationError):
            RulePayload(receipt_properties=(("AndroidPlugin",),))  # type: ignore[arg-type]

    def test_is_empty(self) -> None:
        self.assertTrue(RulePayload().is_empty())
        self.assertFalse(RulePayload(frameworks=("Security",)).is_empty())


class ModuleRuleSetTests(unittest.TestCase):
    def test_base_rule_comes_first(self) -> None:
        conditional = Rule(when(platforms=["Mac"]), RulePayload(frameworks=("Security",)))
        rule_set = ModuleRuleSet("Demo", base=RulePayload(public_dependencies=("Core",)), rules=(conditional,))
        rules = rule_set.all_rules()
        self.assertEqual(rules[0].payload.public_dependencies, ("Core",))
        self.assertEqual(rules[0].predicate.describe(), "always")
        self.assertIs(rules[1], conditional)

    def test_invalid_module_name(self) -> None:
        with self.assertRaises(ConfigurationError):
            ModuleRuleSet("Not A Module")

    def test_rules_must_be_rules(self) -> None:
        with self.assertRaises(ConfigurationError):
            ModuleRuleSet("Demo", rules=(RulePayload(),))  # type: ignore[arg-type]

    def test_rule_requires_predicate(self) -> None:
        with self.assertRaises(ConfigurationError):
            Rule("Mac", RulePayload())  # type: ignore[arg-type]

    def test_declared_dependencies_ignore_gates(self) -> None:
        rule_set = ModuleRuleSet(
            "Demo",
            base=RulePayload(public_dependencies=("Core",), private_dependencies=("Engine",)),
            rules=(
                Rule(when(platforms=["Android"]), RulePayload(private_dependencies=("Launch", "Engine"))),
                Rule(when(min_host_version="4.19"), RulePayload(public_dependencies=("Json",))),
            ),
        )
        self.assertEqual(rule_set.declared_dependencies(), ("Core", "Engine", "Launch", "Json"))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
