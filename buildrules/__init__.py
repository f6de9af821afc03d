"""Build descriptor resolution for the Drift plugin's native modules."""
from __future__ import annotations

from .context import APPLE_PLATFORMS, BuildContext, ContextBuilder, HostVersion, Platform
from .errors import ConfigurationError
from .predicates import AllOf, AlwaysTrue, HostVersionAtLeast, PlatformIn, Predicate, satisfies, when
from .resolver import DescriptorResolver, ModuleDescriptor, resolve_rule_set
from .rules import (
    DEFAULT_CPP_STANDARD,
    DEFAULT_PCH_MODE,
    CppStandard,
    Definition,
    ModuleRuleSet,
    PCHMode,
    Rule,
    RulePayload,
)

__all__ = [
    "APPLE_PLATFORMS",
    "AllOf",
    "AlwaysTrue",
    "BuildContext",
    "ConfigurationError",
    "ContextBuilder",
    "CppStandard",
    "DEFAULT_CPP_STANDARD",
    "DEFAULT_PCH_MODE",
    "Definition",
    "DescriptorResolver",
    "HostVersion",
    "HostVersionAtLeast",
    "ModuleDescriptor",
    "ModuleRuleSet",
    "PCHMode",
    "Platform",
    "PlatformIn",
    "Predicate",
    "Rule",
    "RulePayload",
    "resolve_rule_set",
    "satisfies",
    "when",
]
