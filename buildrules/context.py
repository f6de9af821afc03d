"""Build context values and helpers for assembling them."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple
import os
import platform as _host_platform


class Platform(str, Enum):
    WIN32 = "Win32"
    WIN64 = "Win64"
    MAC = "Mac"
    IOS = "IOS"
    TVOS = "TVOS"
    ANDROID = "Android"
    LINUX = "Linux"
    PS4 = "PS4"
    XBOXONE = "XboxOne"
    SWITCH = "Switch"
    HOLOLENS = "HoloLens"

    @classmethod
    def parse(cls, value: "str | Platform") -> "Platform":
        if isinstance(value, Platform):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        available = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown platform '{value}'. Available: {available}")


APPLE_PLATFORMS = frozenset({Platform.MAC, Platform.IOS, Platform.TVOS})


class HostVersion(NamedTuple):
    major: int
    minor: int

    @classmethod
    def parse(cls, value: "str | HostVersion | tuple[int, int]") -> "HostVersion":
        """Parse ``"4.19"`` style text; a trailing patch component is ignored."""

        if isinstance(value, HostVersion):
            return value
        if isinstance(value, tuple):
            if len(value) != 2:
                raise ValueError(f"Host version must have exactly two components, got {value!r}")
            parts = list(value)
        else:
            parts = str(value).strip().split(".")
            if len(parts) not in (2, 3):
                raise ValueError(f"Host version must look like MAJOR.MINOR, got '{value}'")
        try:
            major, minor = int(parts[0]), int(parts[1])
        except (TypeError, ValueError):
            raise ValueError(f"Host version components must be integers, got '{value}'") from None
        if major < 0 or minor < 0:
            raise ValueError(f"Host version components must not be negative, got '{value}'")
        return cls(major, minor)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


@dataclass(slots=True, frozen=True)
class BuildContext:
    platform: Platform
    host_version: HostVersion
    building_editor: bool = False
    unity_build_requested: bool = False

    @classmethod
    def create(
        cls,
        platform: "str | Platform",
        host_version: "str | HostVersion | tuple[int, int]",
        *,
        building_editor: bool = False,
        unity_build_requested: bool = False,
    ) -> "BuildContext":
        return cls(
            platform=Platform.parse(platform),
            host_version=HostVersion.parse(host_version),
            building_editor=bool(building_editor),
            unity_build_requested=bool(unity_build_requested),
        )

    def to_mapping(self) -> Dict[str, Any]:
        return {
            "platform": self.platform.value,
            "host_version": str(self.host_version),
            "building_editor": self.building_editor,
            "unity_build_requested": self.unity_build_requested,
        }


_HOST_SYSTEMS: Dict[str, Platform] = {
    "windows": Platform.WIN64,
    "darwin": Platform.MAC,
    "linux": Platform.LINUX,
}


class ContextBuilder:
    """Builds a :class:`BuildContext`, filling gaps from the environment."""

    PLATFORM_VARIABLE = "BUILDRULES_PLATFORM"
    HOST_VERSION_VARIABLE = "BUILDRULES_HOST_VERSION"

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = dict(env) if env is not None else dict(os.environ)

    def host_platform(self) -> Platform:
        system = _host_platform.system().lower()
        detected = _HOST_SYSTEMS.get(system)
        if detected is None:
            raise ValueError(f"Cannot map host system '{system}' to a target platform; pass one explicitly")
        return detected

    def build(
        self,
        *,
        platform: str | None = None,
        host_version: str | None = None,
        building_editor: bool = False,
        unity_build_requested: bool = False,
    ) -> BuildContext:
        platform_text = platform or self._env.get(self.PLATFORM_VARIABLE)
        resolved_platform = Platform.parse(platform_text) if platform_text else self.host_platform()

        version_text = host_version or self._env.get(self.HOST_VERSION_VARIABLE)
        if not version_text:
            raise ValueError(
                f"Host version is required (pass --host-version or set {self.HOST_VERSION_VARIABLE})"
            )

        return BuildContext(
            platform=resolved_platform,
            host_version=HostVersion.parse(version_text),
            building_editor=building_editor,
            unity_build_requested=unity_build_requested,
        )


__all__ = ["APPLE_PLATFORMS", "BuildContext", "ContextBuilder", "HostVersion", "Platform"]
