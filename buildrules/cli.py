"""Command line interface for resolving module build descriptors."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Iterable, List
import json
import logging
import sys

from .catalog import builtin_rule_sets
from .config_loader import ConfigurationStore, GlobalConfig
from .context import BuildContext, ContextBuilder
from .errors import ConfigurationError
from .resolver import DescriptorResolver, ModuleDescriptor
from .rules import ModuleRuleSet
from .validation import validate_rule_sets, version_gates

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="buildrules", description="Resolve native module build descriptors")
    parser.add_argument("--config", type=Path, help="Workspace containing config/modules (defaults to built-in modules)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List known modules")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve the build descriptor of a module")
    resolve_parser.add_argument("module", nargs="?", help="Module name to resolve")
    resolve_parser.add_argument("--all", action="store_true", help="Resolve every module for the build context")
    resolve_parser.add_argument("--platform", help="Target platform (e.g. Win64, Mac, Android)")
    resolve_parser.add_argument("--host-version", help="Host engine version as MAJOR.MINOR")
    resolve_parser.add_argument("--editor", action="store_true", help="Resolve for an editor build")
    resolve_parser.add_argument("--unity", action="store_true", help="Request a unity build")
    resolve_parser.add_argument(
        "--with-dependencies",
        action="store_true",
        help="Also resolve the known modules the module depends on, dependencies first",
    )
    resolve_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")

    subparsers.add_parser("validate", help="Validate module rule sets")

    return parser.parse_args(list(argv))


def _configure_logging(global_config: GlobalConfig, *, verbose: bool) -> None:
    level_name = "DEBUG" if verbose else global_config.log_level.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if global_config.log_file:
        handlers.append(logging.FileHandler(global_config.log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=_LOG_FORMAT, handlers=handlers, force=True)


def _uses_default_logging(global_config: GlobalConfig) -> bool:
    defaults = GlobalConfig()
    return global_config.log_level == defaults.log_level and global_config.log_file == defaults.log_file


def _load_rule_sets(config_root: Path | None) -> tuple[List[ModuleRuleSet], GlobalConfig]:
    if config_root is None:
        return builtin_rule_sets(), GlobalConfig()
    store = ConfigurationStore.from_directory(config_root)
    return list(store.modules.values()), store.global_config


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    # [global] log settings are only known once the configuration is loaded.
    _configure_logging(GlobalConfig(), verbose=args.verbose)
    try:
        rule_sets, global_config = _load_rule_sets(args.config)
        if not _uses_default_logging(global_config):
            _configure_logging(global_config, verbose=args.verbose)

        if args.command == "validate":
            return _handle_validate(rule_sets)

        resolver = DescriptorResolver(
            rule_sets,
            default_pch_mode=global_config.default_pch_mode,
            default_cpp_standard=global_config.default_cpp_standard,
        )
        if args.command == "list":
            return _handle_list(resolver)
        if args.command == "resolve":
            return _handle_resolve(args, resolver)
    except (ConfigurationError, FileNotFoundError, KeyError, ValueError) as exc:
        message = exc.args[0] if isinstance(exc, KeyError) and exc.args else exc
        print(f"error: {message}", file=sys.stderr)
        return 1
    raise ValueError(f"Unknown command: {args.command}")


def _handle_list(resolver: DescriptorResolver) -> int:
    gates = version_gates(resolver.rule_sets)
    for name, rule_set in resolver.rule_sets.items():
        details: List[str] = []
        if rule_set.editor_only:
            details.append("editor-only")
        if gates.get(name):
            details.append(f"version gates: {', '.join(gates[name])}")
        suffix = f" ({'; '.join(details)})" if details else ""
        print(f"{name}{suffix}")
    return 0


def _handle_resolve(args: Namespace, resolver: DescriptorResolver) -> int:
    if args.all == bool(args.module):
        raise ValueError("Pass either a module name or --all")

    context = ContextBuilder().build(
        platform=args.platform,
        host_version=args.host_version,
        building_editor=args.editor,
        unity_build_requested=args.unity,
    )
    logger.debug("resolving for %s", context.to_mapping())

    if args.all:
        descriptors = resolver.resolve_all(context)
    elif args.with_dependencies:
        descriptors = resolver.link_order(args.module, context)
    else:
        descriptors = [resolver.resolve(args.module, context)]

    if args.format == "json":
        payload = {
            "context": context.to_mapping(),
            "modules": [descriptor.to_mapping() for descriptor in descriptors],
        }
        print(json.dumps(payload, indent=2))
    else:
        for index, descriptor in enumerate(descriptors):
            if index:
                print()
            for line in _format_descriptor(descriptor, context):
                print(line)
    return 0


def _handle_validate(rule_sets: List[ModuleRuleSet]) -> int:
    errors = validate_rule_sets(rule_sets)
    if errors:
        for error in errors:
            print(error)
        return 1
    print("Validation successful")
    return 0


def _format_descriptor(descriptor: ModuleDescriptor, context: BuildContext) -> List[str]:
    lines = [
        f"Module: {descriptor.module} ({context.platform.value}, host {context.host_version})",
        f"  PCH mode: {descriptor.pch_mode.value}",
    ]
    if descriptor.private_pch_header:
        lines.append(f"  Private PCH header: {descriptor.private_pch_header}")
    lines.append(f"  C++ standard: {descriptor.cpp_standard.value}")
    lines.append(f"  Unity build: {'yes' if descriptor.use_unity else 'no'}")

    sections = (
        ("Public include paths", descriptor.public_include_paths),
        ("Private include paths", descriptor.private_include_paths),
        ("Public dependencies", descriptor.public_dependencies),
        ("Private dependencies", descriptor.private_dependencies),
        ("Dynamically loaded modules", descriptor.dynamically_loaded_modules),
        ("Public include path modules", descriptor.public_include_path_modules),
        ("Definitions", tuple(descriptor.definition_flags())),
        ("Frameworks", descriptor.frameworks),
        ("Receipt properties", tuple(f"{name}={value}" for name, value in descriptor.receipt_properties)),
    )
    for title, values in sections:
        if values:
            lines.append(f"  {title}: {', '.join(values)}")
    return lines


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
