"""Command line tool for inspecting and editing the feature document."""

from __future__ import annotations

import argparse
import asyncio
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import Any, TextIO

from dotenv import load_dotenv
from pydantic import ValidationError

from .config import Settings
from .errors import StoreError
from .services.hashing import get_hash
from .stores.base import MutableStore
from .stores.mongo import MongoStore
from .utils.logging import configure_logging


class CommandError(Exception):
    """A command could not do what was asked; reported without a traceback."""


def installed_version() -> str:
    try:
        return version("flagship")
    except PackageNotFoundError:
        return "unknown"


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flagship", description="Inspect and edit feature flags"
    )
    parser.add_argument(
        "--tableName",
        "--table-name",
        dest="table_name",
        help="Collection holding the feature document (default: featureFlagStore)",
    )
    parser.add_argument(
        "--recordName",
        "--record-name",
        dest="record_name",
        help="_id of the feature document (default: features)",
    )
    commands = parser.add_subparsers(dest="command", metavar="<command>")

    commands.add_parser("ls", help="Print every feature flag")

    feature = commands.add_parser("feature", help="Read or change a single feature flag")
    feature.set_defaults(print_help=feature.print_help)
    actions = feature.add_subparsers(dest="action", metavar="<subcommand>")
    for name, text in (
        ("get", "Print the value of a feature flag"),
        ("enable", "Enable a feature flag"),
        ("disable", "Disable a feature flag"),
        ("rm", "Remove a feature flag"),
    ):
        action = actions.add_parser(name, help=text)
        action.add_argument("feature", metavar="featureName")

    hash_cmd = commands.add_parser(
        "hash",
        help="Print the hash of an input for a throttle; useful for building whitelists",
    )
    hash_cmd.add_argument("throttle")
    hash_cmd.add_argument("input", metavar="hash_input")

    commands.add_parser("version", help="Print the installed version")
    return parser


async def run_command(args: argparse.Namespace, store: MutableStore, out: TextIO) -> None:
    """Execute a store-backed command; raises ``CommandError`` or ``StoreError``."""

    if args.command == "ls":
        features = await store.load_features()
        for name in sorted(features):
            print(f"{name}: {format_value(features[name])}", file=out)
    elif args.command == "feature":
        await _run_feature_action(args, store, out)
    else:
        raise CommandError(f"Unknown command: {args.command}")


async def _run_feature_action(args: argparse.Namespace, store: MutableStore, out: TextIO) -> None:
    if args.action == "get":
        features = await store.load_features()
        if args.feature not in features:
            raise CommandError(f"No feature found: {args.feature}")
        print(f"{args.feature}: {format_value(features[args.feature])}", file=out)
    elif args.action in ("enable", "disable"):
        value = args.action == "enable"
        await store.set_feature(args.feature, value)
        print(f"{args.feature}: {format_value(value)}", file=out)
    elif args.action == "rm":
        await store.remove_feature(args.feature)
        print(f"{args.feature} removed!", file=out)
    else:
        raise CommandError(f"Unknown subcommand: {args.action}")


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0
    if args.command == "feature" and args.action is None:
        args.print_help()
        return 0
    if args.command == "version":
        print(installed_version())
        return 0
    if args.command == "hash":
        print(f"Calculated Hash: {get_hash(args.throttle, args.input)}")
        return 0

    overrides = {
        key: value
        for key, value in (
            ("table_name", args.table_name),
            ("record_name", args.record_name),
        )
        if value
    }
    try:
        settings = Settings(**overrides)
        configure_logging(settings.log_level)
        asyncio.run(_run_with_mongo(args, settings))
    except (CommandError, StoreError, ValidationError, ValueError) as exc:
        print(f"An error occurred: {exc}", file=sys.stderr)
        return 1
    return 0


async def _run_with_mongo(args: argparse.Namespace, settings: Settings) -> None:
    store = MongoStore.from_settings(settings)
    try:
        await run_command(args, store, sys.stdout)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
