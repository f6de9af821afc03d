"""Predicates gating conditional rules and their evaluation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from .context import BuildContext, HostVersion, Platform
from .errors import ConfigurationError


@dataclass(slots=True, frozen=True)
class AlwaysTrue:
    def describe(self) -> str:
        return "always"


@dataclass(slots=True, frozen=True)
class PlatformIn:
    platforms: frozenset[Platform]

    def __post_init__(self) -> None:
        if isinstance(self.platforms, (str, Platform)):
            raise ConfigurationError("PlatformIn expects a collection of platforms, not a single value")
        try:
            normalized = frozenset(Platform.parse(item) for item in self.platforms)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        if not normalized:
            raise ConfigurationError("PlatformIn requires at least one platform")
        object.__setattr__(self, "platforms", normalized)

    def describe(self) -> str:
        names = sorted(platform.value for platform in self.platforms)
        return f"platform in {{{', '.join(names)}}}"


@dataclass(slots=True, frozen=True)
class HostVersionAtLeast:
    major: int
    minor: int

    def __post_init__(self) -> None:
        for label, value in (("major", self.major), ("minor", self.minor)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"HostVersionAtLeast {label} must be an integer, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"HostVersionAtLeast {label} must not be negative, got {value}")

    def describe(self) -> str:
        return f"host >= {self.major}.{self.minor}"


@dataclass(slots=True, frozen=True)
class AllOf:
    predicates: tuple["Predicate", ...]

    def __post_init__(self) -> None:
        members = tuple(self.predicates)
        if not members:
            raise ConfigurationError("AllOf requires at least one predicate")
        for member in members:
            if not isinstance(member, PREDICATE_TYPES):
                raise ConfigurationError(f"AllOf members must be predicates, got {member!r}")
        object.__setattr__(self, "predicates", members)

    def describe(self) -> str:
        return " and ".join(member.describe() for member in self.predicates)


Predicate = Union[AlwaysTrue, PlatformIn, HostVersionAtLeast, AllOf]
PREDICATE_TYPES = (AlwaysTrue, PlatformIn, HostVersionAtLeast, AllOf)

ALWAYS = AlwaysTrue()


def satisfies(predicate: Predicate, context: BuildContext) -> bool:
    """Return whether ``predicate`` holds for ``context``."""

    if isinstance(predicate, AlwaysTrue):
        return True
    if isinstance(predicate, PlatformIn):
        return context.platform in predicate.platforms
    if isinstance(predicate, HostVersionAtLeast):
        host = context.host_version
        return (host.major, host.minor) >= (predicate.major, predicate.minor)
    if isinstance(predicate, AllOf):
        return all(satisfies(member, context) for member in predicate.predicates)
    raise TypeError(f"Unsupported predicate type: {type(predicate).__name__}")


def when(
    *,
    platforms: Iterable["str | Platform"] | None = None,
    min_host_version: "str | HostVersion | tuple[int, int] | None" = None,
) -> Predicate:
    """Build the predicate for a rule gated by platform and/or minimum host version."""

    members: list[Predicate] = []
    if platforms is not None:
        if isinstance(platforms, str):
            raise ConfigurationError("platforms must be a collection of platform names, not a single string")
        members.append(PlatformIn(frozenset(platforms)))
    if min_host_version is not None:
        try:
            version = HostVersion.parse(min_host_version)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid minimum host version {min_host_version!r}: {exc}") from exc
        members.append(HostVersionAtLeast(version.major, version.minor))
    if not members:
        return ALWAYS
    if len(members) == 1:
        return members[0]
    return AllOf(tuple(members))


def platforms_of(predicate: Predicate) -> frozenset[Platform] | None:
    """Platforms a predicate can hold on, or ``None`` when it is not platform restricted."""

    if isinstance(predicate, PlatformIn):
        return predicate.platforms
    if isinstance(predicate, AllOf):
        restricted: frozenset[Platform] | None = None
        for member in predicate.predicates:
            member_platforms = platforms_of(member)
            if member_platforms is None:
                continue
            restricted = member_platforms if restricted is None else restricted & member_platforms
        return restricted
    return None


__all__ = [
    "ALWAYS",
    "AllOf",
    "AlwaysTrue",
    "HostVersionAtLeast",
    "PREDICATE_TYPES",
    "PlatformIn",
    "Predicate",
    "platforms_of",
    "satisfies",
    "when",
]
