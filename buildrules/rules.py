"""Rule model: payloads, conditional rules and per-module rule sets.

Everything in here validates on construction, so a rule set that exists is a
rule set the resolver can always evaluate.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping
import re

from .errors import ConfigurationError
from .predicates import ALWAYS, PREDICATE_TYPES, Predicate


_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class PCHMode(str, Enum):
    NO_PCHS = "NoPCHs"
    NO_SHARED_PCHS = "NoSharedPCHs"
    USE_SHARED_PCHS = "UseSharedPCHs"
    USE_EXPLICIT_OR_SHARED_PCHS = "UseExplicitOrSharedPCHs"


class CppStandard(str, Enum):
    CPP14 = "Cpp14"
    CPP17 = "Cpp17"
    CPP20 = "Cpp20"
    LATEST = "Latest"


DEFAULT_PCH_MODE = PCHMode.USE_EXPLICIT_OR_SHARED_PCHS
DEFAULT_CPP_STANDARD = CppStandard.CPP14


def parse_enum(enum_type: type[Enum], value: Any, *, field_name: str) -> Any:
    if isinstance(value, enum_type):
        return value
    text = str(value).strip().lower()
    for member in enum_type:  # type: ignore[var-annotated]
        if member.value.lower() == text:
            return member
    available = ", ".join(member.value for member in enum_type)  # type: ignore[attr-defined]
    raise ConfigurationError(f"{field_name} must be one of {available}, got {value!r}")


@dataclass(slots=True, frozen=True)
class Definition:
    name: str
    value: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not _IDENTIFIER_PATTERN.match(self.name):
            raise ConfigurationError(f"Definition name must be an identifier, got {self.name!r}")
        if self.value is not None:
            object.__setattr__(self, "value", str(self.value))

    @classmethod
    def parse(cls, value: "str | Mapping[str, Any] | Definition") -> "Definition":
        if isinstance(value, Definition):
            return value
        if isinstance(value, str):
            name, sep, raw = value.strip().partition("=")
            return cls(name.strip(), raw.strip() if sep else None)
        if isinstance(value, Mapping):
            raw_value = value.get("value")
            return cls(str(value.get("name", "")).strip(), None if raw_value is None else str(raw_value))
        raise ConfigurationError(f"Definitions must be strings or mappings, got {value!r}")

    def render(self) -> str:
        return self.name if self.value is None else f"{self.name}={self.value}"

    def __str__(self) -> str:
        return self.render()


def _string_tuple(values: Iterable[str], *, field_name: str) -> tuple[str, ...]:
    if isinstance(values, (str, bytes)):
        raise ConfigurationError(f"{field_name} must be a sequence of strings, not a single string")
    result: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise ConfigurationError(f"{field_name} entries must be strings, got {item!r}")
        text = item.strip()
        if not text:
            raise ConfigurationError(f"{field_name} entries must not be empty")
        if text not in result:
            result.append(text)
    return tuple(result)


@dataclass(slots=True, frozen=True)
class RulePayload:
    public_include_paths: tuple[str, ...] = ()
    private_include_paths: tuple[str, ...] = ()
    public_dependencies: tuple[str, ...] = ()
    private_dependencies: tuple[str, ...] = ()
    dynamically_loaded_modules: tuple[str, ...] = ()
    public_include_path_modules: tuple[str, ...] = ()
    definitions: tuple[Definition, ...] = ()
    frameworks: tuple[str, ...] = ()
    receipt_properties: tuple[tuple[str, str], ...] = ()
    pch_mode: PCHMode | None = None
    private_pch_header: str | None = None
    cpp_standard: CppStandard | None = None

    ADDITIVE_FIELDS = (
        "public_include_paths",
        "private_include_paths",
        "public_dependencies",
        "private_dependencies",
        "dynamically_loaded_modules",
        "public_include_path_modules",
        "frameworks",
    )

    def __post_init__(self) -> None:
        for name in self.ADDITIVE_FIELDS:
            object.__setattr__(self, name, _string_tuple(getattr(self, name), field_name=name))

        definitions: dict[str, Definition] = {}
        for raw in self.definitions:
            definition = Definition.parse(raw)
            existing = definitions.get(definition.name)
            if existing is not None and existing.value != definition.value:
                raise ConfigurationError(
                    f"Definition '{definition.name}' is given conflicting values "
                    f"{existing.value!r} and {definition.value!r} in the same rule"
                )
            definitions[definition.name] = definition
        object.__setattr__(self, "definitions", tuple(definitions.values()))

        properties: list[tuple[str, str]] = []
        for entry in self.receipt_properties:
            if not isinstance(entry, tuple) or len(entry) != 2:
                raise ConfigurationError(f"receipt_properties entries must be (name, value) pairs, got {entry!r}")
            name, value = (str(part).strip() for part in entry)
            if not name:
                raise ConfigurationError("receipt property names must not be empty")
            if (name, value) not in properties:
                properties.append((name, value))
        object.__setattr__(self, "receipt_properties", tuple(properties))

        if self.pch_mode is not None:
            object.__setattr__(self, "pch_mode", parse_enum(PCHMode, self.pch_mode, field_name="pch_mode"))
        if self.cpp_standard is not None:
            object.__setattr__(
                self,
                "cpp_standard",
                parse_enum(CppStandard, self.cpp_standard, field_name="cpp_standard"),
            )
        if self.private_pch_header is not None:
            header = str(self.private_pch_header).strip()
            if not header:
                raise ConfigurationError("private_pch_header must not be empty when given")
            object.__setattr__(self, "private_pch_header", header)

    def is_empty(self) -> bool:
        return self == RulePayload()


@dataclass(slots=True, frozen=True)
class Rule:
    predicate: Predicate
    payload: RulePayload
    note: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.predicate, PREDICATE_TYPES):
            raise ConfigurationError(f"Rule predicate must be a predicate, got {self.predicate!r}")
        if not isinstance(self.payload, RulePayload):
            raise ConfigurationError(f"Rule payload must be a RulePayload, got {self.payload!r}")

    def describe(self) -> str:
        text = self.predicate.describe()
        return f"{text} ({self.note})" if self.note else text


@dataclass(slots=True, frozen=True)
class ModuleRuleSet:
    name: str
    base: RulePayload = field(default_factory=RulePayload)
    rules: tuple[Rule, ...] = ()
    faster_without_unity: bool = False
    editor_only: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not _IDENTIFIER_PATTERN.match(self.name):
            raise ConfigurationError(f"Module name must be an identifier, got {self.name!r}")
        if not isinstance(self.base, RulePayload):
            raise ConfigurationError(f"Module '{self.name}' base must be a RulePayload")
        rules = tuple(self.rules)
        for index, rule in enumerate(rules):
            if not isinstance(rule, Rule):
                raise ConfigurationError(f"Module '{self.name}' rule #{index + 1} is not a Rule: {rule!r}")
        object.__setattr__(self, "rules", rules)

    @property
    def base_rule(self) -> Rule:
        return Rule(ALWAYS, self.base, note="base")

    def all_rules(self) -> tuple[Rule, ...]:
        """Base rule first, then the conditional rules in declaration order."""

        return (self.base_rule, *self.rules)

    def declared_dependencies(self) -> tuple[str, ...]:
        """Every module named as a dependency by any rule, regardless of its gate."""

        names: list[str] = []
        for rule in self.all_rules():
            for name in (*rule.payload.public_dependencies, *rule.payload.private_dependencies):
                if name not in names:
                    names.append(name)
        return tuple(names)


__all__ = [
    "CppStandard",
    "DEFAULT_CPP_STANDARD",
    "DEFAULT_PCH_MODE",
    "Definition",
    "ModuleRuleSet",
    "PCHMode",
    "Rule",
    "RulePayload",
    "parse_enum",
]
