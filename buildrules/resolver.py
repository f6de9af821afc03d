"""Descriptor resolution: merge a module's matching rules into one descriptor."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping
import logging

from .context import BuildContext
from .errors import ConfigurationError
from .predicates import satisfies
from .rules import (
    DEFAULT_CPP_STANDARD,
    DEFAULT_PCH_MODE,
    CppStandard,
    Definition,
    ModuleRuleSet,
    PCHMode,
    RulePayload,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ModuleDescriptor:
    module: str
    public_include_paths: tuple[str, ...]
    private_include_paths: tuple[str, ...]
    public_dependencies: tuple[str, ...]
    private_dependencies: tuple[str, ...]
    dynamically_loaded_modules: tuple[str, ...]
    public_include_path_modules: tuple[str, ...]
    definitions: tuple[Definition, ...]
    frameworks: tuple[str, ...]
    receipt_properties: tuple[tuple[str, str], ...]
    pch_mode: PCHMode
    private_pch_header: str | None
    cpp_standard: CppStandard
    use_unity: bool

    def definition_flags(self) -> List[str]:
        return [definition.render() for definition in self.definitions]

    def dependencies(self) -> tuple[str, ...]:
        private_only = (name for name in self.private_dependencies if name not in self.public_dependencies)
        return (*self.public_dependencies, *private_only)

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "module": self.module,
            "public_include_paths": list(self.public_include_paths),
            "private_include_paths": list(self.private_include_paths),
            "public_dependencies": list(self.public_dependencies),
            "private_dependencies": list(self.private_dependencies),
            "dynamically_loaded_modules": list(self.dynamically_loaded_modules),
            "public_include_path_modules": list(self.public_include_path_modules),
            "definitions": self.definition_flags(),
            "frameworks": list(self.frameworks),
            "receipt_properties": {name: value for name, value in self.receipt_properties},
            "pch_mode": self.pch_mode.value,
            "private_pch_header": self.private_pch_header,
            "cpp_standard": self.cpp_standard.value,
            "use_unity": self.use_unity,
        }


@dataclass(slots=True)
class _Accumulator:
    public_include_paths: List[str] = field(default_factory=list)
    private_include_paths: List[str] = field(default_factory=list)
    public_dependencies: List[str] = field(default_factory=list)
    private_dependencies: List[str] = field(default_factory=list)
    dynamically_loaded_modules: List[str] = field(default_factory=list)
    public_include_path_modules: List[str] = field(default_factory=list)
    frameworks: List[str] = field(default_factory=list)
    definitions: Dict[str, Definition] = field(default_factory=dict)
    receipt_properties: List[tuple[str, str]] = field(default_factory=list)
    pch_mode: PCHMode | None = None
    private_pch_header: str | None = None
    cpp_standard: CppStandard | None = None

    def merge(self, payload: RulePayload) -> None:
        for name in RulePayload.ADDITIVE_FIELDS:
            self._extend_unique(getattr(self, name), getattr(payload, name))
        for definition in payload.definitions:
            # Later values replace earlier ones but keep the first-seen position.
            self.definitions[definition.name] = definition
        self._extend_unique(self.receipt_properties, payload.receipt_properties)
        if payload.pch_mode is not None:
            self.pch_mode = payload.pch_mode
        if payload.private_pch_header is not None:
            self.private_pch_header = payload.private_pch_header
        if payload.cpp_standard is not None:
            self.cpp_standard = payload.cpp_standard

    @staticmethod
    def _extend_unique(target: List[Any], values: Iterable[Any]) -> None:
        existing = set(target)
        for value in values:
            if value not in existing:
                target.append(value)
                existing.add(value)

    def freeze(
        self,
        module: str,
        *,
        use_unity: bool,
        default_pch_mode: PCHMode,
        default_cpp_standard: CppStandard,
    ) -> ModuleDescriptor:
        return ModuleDescriptor(
            module=module,
            public_include_paths=tuple(self.public_include_paths),
            private_include_paths=tuple(self.private_include_paths),
            public_dependencies=tuple(self.public_dependencies),
            private_dependencies=tuple(self.private_dependencies),
            dynamically_loaded_modules=tuple(self.dynamically_loaded_modules),
            public_include_path_modules=tuple(self.public_include_path_modules),
            definitions=tuple(self.definitions.values()),
            frameworks=tuple(self.frameworks),
            receipt_properties=tuple(self.receipt_properties),
            pch_mode=self.pch_mode or default_pch_mode,
            private_pch_header=self.private_pch_header,
            cpp_standard=self.cpp_standard or default_cpp_standard,
            use_unity=use_unity,
        )


def resolve_rule_set(
    rule_set: ModuleRuleSet,
    context: BuildContext,
    *,
    default_pch_mode: PCHMode = DEFAULT_PCH_MODE,
    default_cpp_standard: CppStandard = DEFAULT_CPP_STANDARD,
) -> ModuleDescriptor:
    """Apply the base payload and every matching rule of ``rule_set`` in order."""

    accumulator = _Accumulator()
    accumulator.merge(rule_set.base)
    for index, rule in enumerate(rule_set.rules, start=1):
        if not satisfies(rule.predicate, context):
            logger.debug("%s: rule #%d skipped (%s)", rule_set.name, index, rule.describe())
            continue
        logger.debug("%s: rule #%d applied (%s)", rule_set.name, index, rule.describe())
        accumulator.merge(rule.payload)

    use_unity = context.unity_build_requested and not rule_set.faster_without_unity
    return accumulator.freeze(
        rule_set.name,
        use_unity=use_unity,
        default_pch_mode=default_pch_mode,
        default_cpp_standard=default_cpp_standard,
    )


class DescriptorResolver:
    """Owns one rule set per module and resolves descriptors for a build context."""

    def __init__(
        self,
        rule_sets: Iterable[ModuleRuleSet],
        *,
        default_pch_mode: PCHMode = DEFAULT_PCH_MODE,
        default_cpp_standard: CppStandard = DEFAULT_CPP_STANDARD,
    ) -> None:
        self._rule_sets: Dict[str, ModuleRuleSet] = {}
        for rule_set in rule_sets:
            if rule_set.name in self._rule_sets:
                raise ConfigurationError(f"Module '{rule_set.name}' is declared more than once")
            self._rule_sets[rule_set.name] = rule_set
        self._default_pch_mode = default_pch_mode
        self._default_cpp_standard = default_cpp_standard
        self._check_dependency_cycles()

    @property
    def rule_sets(self) -> Mapping[str, ModuleRuleSet]:
        return dict(self._rule_sets)

    def get_rule_set(self, name: str) -> ModuleRuleSet:
        if name not in self._rule_sets:
            available = ", ".join(sorted(self._rule_sets)) or "<none>"
            raise KeyError(f"Module '{name}' not found. Available modules: {available}")
        return self._rule_sets[name]

    def resolve(self, name: str, context: BuildContext) -> ModuleDescriptor:
        return resolve_rule_set(
            self.get_rule_set(name),
            context,
            default_pch_mode=self._default_pch_mode,
            default_cpp_standard=self._default_cpp_standard,
        )

    def resolve_all(self, context: BuildContext) -> List[ModuleDescriptor]:
        descriptors: List[ModuleDescriptor] = []
        for name, rule_set in self._rule_sets.items():
            if rule_set.editor_only and not context.building_editor:
                logger.debug("%s: skipped, editor-only module outside an editor build", name)
                continue
            descriptors.append(self.resolve(name, context))
        return descriptors

    def link_order(self, name: str, context: BuildContext) -> List[ModuleDescriptor]:
        """Descriptors for ``name`` and the owned modules it depends on, dependencies first."""

        resolved: Dict[str, ModuleDescriptor] = {}
        order: List[str] = []

        def visit(module_name: str) -> None:
            if module_name in resolved:
                return
            descriptor = self.resolve(module_name, context)
            resolved[module_name] = descriptor
            for dependency in descriptor.dependencies():
                if dependency in self._rule_sets:
                    visit(dependency)
            order.append(module_name)

        self.get_rule_set(name)
        visit(name)
        return [resolved[module_name] for module_name in order]

    def _check_dependency_cycles(self) -> None:
        visiting: List[str] = []
        visited: set[str] = set()

        def visit(module_name: str) -> None:
            if module_name in visiting:
                cycle = " -> ".join([*visiting[visiting.index(module_name):], module_name])
                raise ConfigurationError(f"Module dependency cycle detected: {cycle}")
            if module_name in visited:
                return
            visiting.append(module_name)
            for dependency in self._rule_sets[module_name].declared_dependencies():
                if dependency in self._rule_sets:
                    visit(dependency)
            visiting.pop()
            visited.add(module_name)

        for module_name in self._rule_sets:
            visit(module_name)


__all__ = ["DescriptorResolver", "ModuleDescriptor", "resolve_rule_set"]
