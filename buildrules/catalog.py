"""Rule sets for the Drift plugin modules."""
from __future__ import annotations

from typing import List

from .context import Platform
from .predicates import when
from .rules import ModuleRuleSet, PCHMode, Rule, RulePayload


DRIFT = ModuleRuleSet(
    name="Drift",
    base=RulePayload(
        public_include_paths=("Drift/Drift/Public",),
        private_include_paths=("Drift/Drift/Private",),
        public_dependencies=("Core", "CoreUObject"),
        private_dependencies=(
            "Engine",
            "Slate",
            "SlateCore",
            "HTTP",
            "Sockets",
            "OnlineSubsystem",
            "OnlineSubsystemUtils",
            "DriftHttp",
            "RapidJson",
            "ErrorReporter",
            "Json",
        ),
    ),
    rules=(
        Rule(
            when(platforms=(Platform.MAC, Platform.IOS)),
            RulePayload(frameworks=("Security",)),
            note="keychain access",
        ),
        Rule(
            when(platforms=(Platform.ANDROID,)),
            RulePayload(
                private_dependencies=("Launch",),
                receipt_properties=(("AndroidPlugin", "Drift_APL.xml"),),
            ),
        ),
        Rule(
            when(platforms=(Platform.ANDROID,), min_host_version="4.18"),
            RulePayload(private_dependencies=("ApplicationCore",)),
            note="ApplicationCore split out of Launch",
        ),
        Rule(
            when(min_host_version="4.19"),
            RulePayload(definitions=("WITH_ANALYTICS_EVENT_ATTRIBUTE_TYPES",)),
        ),
    ),
)

DRIFT_EDITOR = ModuleRuleSet(
    name="DriftEditor",
    editor_only=True,
    base=RulePayload(
        pch_mode=PCHMode.USE_EXPLICIT_OR_SHARED_PCHS,
        private_dependencies=(
            "Core",
            "CoreUObject",
            "Engine",
            "RenderCore",
            "RHI",
            "Slate",
            "SlateCore",
            "EditorStyle",
            "EditorWidgets",
            "DesktopWidgets",
            "PropertyEditor",
            "SharedSettingsWidgets",
            "SourceControl",
            "UnrealEd",
            "Http",
            "Json",
            "JsonUtilities",
            "InputCore",
        ),
        dynamically_loaded_modules=("Settings",),
        public_include_path_modules=("Settings",),
    ),
)

DRIFT_HTTP = ModuleRuleSet(
    name="DriftHttp",
    faster_without_unity=True,
    base=RulePayload(
        pch_mode=PCHMode.NO_SHARED_PCHS,
        private_include_paths=("Drift/DriftHttp/Public",),
        public_dependencies=("Core",),
        private_dependencies=("Engine", "HTTP", "RapidJson", "ErrorReporter", "Json", "Launch"),
    ),
)

ERROR_REPORTER = ModuleRuleSet(
    name="ErrorReporter",
    base=RulePayload(
        pch_mode=PCHMode.NO_SHARED_PCHS,
        private_pch_header="Private/ErrorReporterPCH.h",
        definitions=("ERROR_REPORTER_PACKAGE=1",),
        public_dependencies=("Json",),
        private_dependencies=("Core", "CoreUObject", "Engine"),
    ),
)

JSON_ARCHIVE = ModuleRuleSet(
    name="JsonArchive",
    faster_without_unity=True,
    base=RulePayload(
        pch_mode=PCHMode.USE_EXPLICIT_OR_SHARED_PCHS,
        public_dependencies=("Core", "HTTP", "Json"),
    ),
)

RAPID_JSON = ModuleRuleSet(
    name="RapidJson",
    faster_without_unity=True,
    base=RulePayload(
        pch_mode=PCHMode.NO_SHARED_PCHS,
        public_dependencies=("Core", "HTTP"),
    ),
    rules=(
        Rule(
            when(platforms=(Platform.WIN64, Platform.PS4)),
            RulePayload(definitions=("RAPIDJSON_HAS_CXX11_RVALUE_REFS=1",)),
        ),
    ),
)


PLUGIN_MODULES: tuple[ModuleRuleSet, ...] = (
    DRIFT,
    DRIFT_EDITOR,
    DRIFT_HTTP,
    ERROR_REPORTER,
    JSON_ARCHIVE,
    RAPID_JSON,
)


def builtin_rule_sets() -> List[ModuleRuleSet]:
    return list(PLUGIN_MODULES)


__all__ = ["PLUGIN_MODULES", "builtin_rule_sets"]
