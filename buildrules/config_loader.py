"""Loading module rule sets and global defaults from configuration files."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence
import json
import logging
import tomllib

import yaml

from .errors import ConfigurationError
from .predicates import when
from .resolver import DescriptorResolver
from .rules import (
    DEFAULT_CPP_STANDARD,
    DEFAULT_PCH_MODE,
    CppStandard,
    Definition,
    ModuleRuleSet,
    PCHMode,
    Rule,
    RulePayload,
    parse_enum,
)

logger = logging.getLogger(__name__)

ConfigLoader = Callable[[Any], Mapping[str, Any]]


FILE_LOADERS: Dict[str, ConfigLoader] = {
    ".toml": lambda stream: tomllib.load(stream),
    ".json": lambda stream: json.load(stream),
    ".yaml": lambda stream: yaml.safe_load(stream),
    ".yml": lambda stream: yaml.safe_load(stream),
}
"""Mapping of file suffixes to loader callables."""


def load_config_file(path: Path) -> Mapping[str, Any]:
    """Load and decode a configuration mapping from ``path``."""

    suffix = path.suffix.lower()
    loader = FILE_LOADERS.get(suffix)
    if loader is None:
        supported = ", ".join(sorted(FILE_LOADERS)) or "<none>"
        raise ValueError(f"Unsupported configuration file extension: {suffix}. Supported: {supported}")

    mode = "rb" if suffix == ".toml" else "r"
    kwargs: Dict[str, Any] = {}
    if mode == "r":
        kwargs["encoding"] = "utf-8"

    with path.open(mode, **kwargs) as handle:
        data = loader(handle)

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Configuration file '{path}' must contain a mapping at the root")

    logger.debug("loaded configuration file %s", path)
    return data


def collect_config_files(directory: Path) -> Dict[str, Path]:
    """Return a mapping of filename stems to configuration files within ``directory``."""

    files: Dict[str, Path] = {}
    for path in sorted(directory.iterdir()):
        if not path.is_file():
            continue
        if path.suffix.lower() not in FILE_LOADERS:
            continue
        stem = path.stem
        if stem in files:
            other = files[stem]
            raise ValueError(
                f"Multiple configuration files found for '{stem}': '{other.name}' and '{path.name}'. "
                "Only one format per configuration entry is allowed."
            )
        files[stem] = path
    return files


def _string_list(value: Any, *, field_name: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence) and not isinstance(value, bytes):
        items: List[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigurationError(f"{field_name} entries must be strings")
            items.append(item)
        return items
    raise ConfigurationError(f"{field_name} must be a string or sequence of strings")


_LIST_KEYS = (*RulePayload.ADDITIVE_FIELDS,)
_RULE_KEYS = {"platforms", "min_host_version", "note"}
_PAYLOAD_KEYS = {
    *_LIST_KEYS,
    "definitions",
    "receipt_properties",
    "pch_mode",
    "private_pch_header",
    "cpp_standard",
}


def payload_from_mapping(data: Mapping[str, Any], *, label: str) -> RulePayload:
    unknown = sorted(str(key) for key in data if key not in _PAYLOAD_KEYS and key not in _RULE_KEYS)
    if unknown:
        raise ConfigurationError(f"{label}: unknown keys {', '.join(unknown)}")

    kwargs: Dict[str, Any] = {}
    for key in _LIST_KEYS:
        kwargs[key] = tuple(_string_list(data.get(key), field_name=f"{label}.{key}"))

    raw_definitions = data.get("definitions")
    if raw_definitions is not None:
        if isinstance(raw_definitions, Mapping):
            entries: List[Any] = [
                {"name": name, "value": None if value is True else value}
                for name, value in raw_definitions.items()
            ]
        elif isinstance(raw_definitions, str):
            entries = [raw_definitions]
        elif isinstance(raw_definitions, Sequence):
            entries = list(raw_definitions)
        else:
            raise ConfigurationError(f"{label}.definitions must be a list or table")
        try:
            kwargs["definitions"] = tuple(Definition.parse(entry) for entry in entries)
        except ConfigurationError as exc:
            raise ConfigurationError(f"{label}: {exc}") from exc

    raw_properties = data.get("receipt_properties")
    if raw_properties is not None:
        if not isinstance(raw_properties, Mapping):
            raise ConfigurationError(f"{label}.receipt_properties must be a table of name = value")
        kwargs["receipt_properties"] = tuple((str(name), str(value)) for name, value in raw_properties.items())

    if data.get("pch_mode") is not None:
        kwargs["pch_mode"] = parse_enum(PCHMode, data["pch_mode"], field_name=f"{label}.pch_mode")
    if data.get("cpp_standard") is not None:
        kwargs["cpp_standard"] = parse_enum(CppStandard, data["cpp_standard"], field_name=f"{label}.cpp_standard")
    if data.get("private_pch_header") is not None:
        kwargs["private_pch_header"] = str(data["private_pch_header"])

    try:
        return RulePayload(**kwargs)
    except ConfigurationError as exc:
        raise ConfigurationError(f"{label}: {exc}") from exc


def _host_version_field(value: Any, *, label: str) -> "str | tuple[int, int] | None":
    # Unquoted TOML/YAML numbers lose digits (4.20 reads as 4.2).
    if value is None or isinstance(value, str):
        return value
    if (
        isinstance(value, Sequence)
        and len(value) == 2
        and all(isinstance(item, int) and not isinstance(item, bool) for item in value)
    ):
        return (value[0], value[1])
    raise ConfigurationError(f"{label}.min_host_version must be a quoted \"MAJOR.MINOR\" string")


def rule_from_mapping(data: Mapping[str, Any], *, label: str) -> Rule:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{label} must be a table")
    platforms = data.get("platforms")
    if platforms is not None:
        platforms = _string_list(platforms, field_name=f"{label}.platforms")
    min_host_version = _host_version_field(data.get("min_host_version"), label=label)
    try:
        predicate = when(platforms=platforms, min_host_version=min_host_version)
    except ConfigurationError as exc:
        raise ConfigurationError(f"{label}: {exc}") from exc
    note = data.get("note")
    return Rule(predicate, payload_from_mapping(data, label=label), note=str(note) if note else None)


def _bool_field(section: Mapping[str, Any], key: str, *, label: str) -> bool:
    value = section.get(key, False)
    if not isinstance(value, bool):
        raise ConfigurationError(f"{label}: module.{key} must be true or false, got {value!r}")
    return value


def rule_set_from_mapping(data: Mapping[str, Any], *, source: str = "<mapping>") -> ModuleRuleSet:
    module_section = data.get("module")
    if not isinstance(module_section, Mapping):
        raise ConfigurationError(f"{source}: [module] section is required")
    name = module_section.get("name")
    if not name:
        raise ConfigurationError(f"{source}: module.name is required")
    label = f"module '{name}'"

    base_section = data.get("base", {})
    if not isinstance(base_section, Mapping):
        raise ConfigurationError(f"{label}: [base] must be a table")
    extra_base_keys = sorted(str(key) for key in base_section if key in _RULE_KEYS)
    if extra_base_keys:
        raise ConfigurationError(f"{label}: [base] is unconditional and cannot use {', '.join(extra_base_keys)}")
    base = payload_from_mapping(base_section, label=f"{label} base")

    rules_section = data.get("rules", [])
    if not isinstance(rules_section, Sequence) or isinstance(rules_section, (str, bytes)):
        raise ConfigurationError(f"{label}: [[rules]] must be an array of tables")
    rules = [
        rule_from_mapping(entry, label=f"{label} rule #{index}")
        for index, entry in enumerate(rules_section, start=1)
    ]

    return ModuleRuleSet(
        name=str(name),
        base=base,
        rules=tuple(rules),
        faster_without_unity=_bool_field(module_section, "faster_without_unity", label=label),
        editor_only=_bool_field(module_section, "editor_only", label=label),
    )


@dataclass(slots=True)
class GlobalConfig:
    default_pch_mode: PCHMode = DEFAULT_PCH_MODE
    default_cpp_standard: CppStandard = DEFAULT_CPP_STANDARD
    log_level: str = "info"
    log_file: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GlobalConfig":
        global_section = data.get("global", {}) if isinstance(data, Mapping) else {}
        if not isinstance(global_section, Mapping):
            raise ConfigurationError("[global] must be a table")
        return cls(
            default_pch_mode=parse_enum(
                PCHMode,
                global_section.get("default_pch_mode", DEFAULT_PCH_MODE),
                field_name="global.default_pch_mode",
            ),
            default_cpp_standard=parse_enum(
                CppStandard,
                global_section.get("default_cpp_standard", DEFAULT_CPP_STANDARD),
                field_name="global.default_cpp_standard",
            ),
            log_level=str(global_section.get("log_level", "info")),
            log_file=str(global_section.get("log_file")) if global_section.get("log_file") else None,
        )


@dataclass(slots=True)
class ConfigurationStore:
    root: Path
    global_config: GlobalConfig
    modules: Dict[str, ModuleRuleSet] = field(default_factory=dict)
    sources: Dict[str, Path] = field(default_factory=dict)

    @classmethod
    def from_directory(cls, root: Path) -> "ConfigurationStore":
        config_dir = root / "config"
        if not config_dir.exists():
            raise FileNotFoundError(f"Configuration directory not found: {config_dir}")

        top_level_files = collect_config_files(config_dir)
        global_data: Mapping[str, Any] = {}
        global_path = top_level_files.get("config")
        if global_path is not None:
            global_data = load_config_file(global_path)
        global_config = GlobalConfig.from_mapping(global_data)

        modules_dir = config_dir / "modules"
        if not modules_dir.exists():
            raise FileNotFoundError(f"Directory {modules_dir} does not exist")

        modules: Dict[str, ModuleRuleSet] = {}
        sources: Dict[str, Path] = {}
        for _, path in collect_config_files(modules_dir).items():
            rule_set = rule_set_from_mapping(load_config_file(path), source=str(path))
            if rule_set.name in modules:
                raise ConfigurationError(
                    f"Module '{rule_set.name}' is defined in both '{sources[rule_set.name]}' and '{path}'"
                )
            modules[rule_set.name] = rule_set
            sources[rule_set.name] = path

        return cls(root=root, global_config=global_config, modules=modules, sources=sources)

    def list_modules(self) -> Iterable[str]:
        return self.modules.keys()

    def resolver(self) -> DescriptorResolver:
        return DescriptorResolver(
            self.modules.values(),
            default_pch_mode=self.global_config.default_pch_mode,
            default_cpp_standard=self.global_config.default_cpp_standard,
        )


__all__ = [
    "ConfigLoader",
    "ConfigurationStore",
    "FILE_LOADERS",
    "GlobalConfig",
    "collect_config_files",
    "load_config_file",
    "payload_from_mapping",
    "rule_from_mapping",
    "rule_set_from_mapping",
]
