"""Cross-module checks for a collection of rule sets."""
from __future__ import annotations

from typing import Iterable, Mapping

from .context import APPLE_PLATFORMS
from .errors import ConfigurationError
from .predicates import HostVersionAtLeast, platforms_of
from .resolver import DescriptorResolver
from .rules import ModuleRuleSet, PCHMode, Rule


def validate_rule_sets(rule_sets: Iterable[ModuleRuleSet]) -> list[str]:
    """Return human-readable problems found across ``rule_sets``; empty when clean."""

    rule_sets = list(rule_sets)
    errors: list[str] = []

    try:
        DescriptorResolver(rule_sets)
    except ConfigurationError as exc:
        errors.append(str(exc))

    for rule_set in rule_sets:
        _validate_rule_set(rule_set, errors=errors)
    return errors


def _validate_rule_set(rule_set: ModuleRuleSet, *, errors: list[str]) -> None:
    label = f"Module '{rule_set.name}'"

    for index, rule in enumerate(rule_set.all_rules()):
        rule_label = f"{label} base" if index == 0 else f"{label} rule #{index} ({rule.describe()})"
        _validate_rule(rule, label=rule_label, errors=errors)

    for index, rule in enumerate(rule_set.rules, start=1):
        if rule.payload.is_empty():
            errors.append(f"{label} rule #{index} ({rule.describe()}) adds nothing")


def _validate_rule(rule: Rule, *, label: str, errors: list[str]) -> None:
    payload = rule.payload
    if payload.frameworks:
        restricted = platforms_of(rule.predicate)
        if restricted is None or not restricted <= APPLE_PLATFORMS:
            names = ", ".join(payload.frameworks)
            errors.append(f"{label} links frameworks ({names}) without being restricted to Apple platforms")

    if payload.private_pch_header and payload.pch_mode is PCHMode.NO_PCHS:
        errors.append(f"{label} names a private PCH header while disabling PCHs")

    overlap = set(payload.public_dependencies) & set(payload.private_dependencies)
    if overlap:
        errors.append(f"{label} lists {', '.join(sorted(overlap))} as both public and private dependencies")


def version_gates(rule_sets: Mapping[str, ModuleRuleSet]) -> dict[str, list[str]]:
    """Minimum host versions referenced by each module, for reporting."""

    gates: dict[str, list[str]] = {}
    for name, rule_set in rule_sets.items():
        versions: set[tuple[int, int]] = set()
        for rule in rule_set.rules:
            stack = [rule.predicate]
            while stack:
                predicate = stack.pop()
                if isinstance(predicate, HostVersionAtLeast):
                    versions.add((predicate.major, predicate.minor))
                stack.extend(getattr(predicate, "predicates", ()))
        gates[name] = [f"{major}.{minor}" for major, minor in sorted(versions)]
    return gates


__all__ = ["validate_rule_sets", "version_gates"]
