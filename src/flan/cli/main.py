# Copyright 2026 Flan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entry point for the flan command-line interface."""

import argparse
import sys
from pathlib import Path

from flan.config.file import DEFAULT_CONFIG_NAME, MAX_VERBOSITY, ConfigError
from flan.config.settings import Command, load_config, make_flags
from flan.driver import run

# ###############
# Public Interface
# ###############


def main() -> None:
    """Run the flan CLI."""
    parser = argparse.ArgumentParser(
        prog="flan",
        description="flan - variant preprocessor for text files",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    common = _common_parser()

    # init subcommand
    init_parser = subparsers.add_parser(
        "init",
        help="Create a starter configuration file",
        description=f"Write a starter {DEFAULT_CONFIG_NAME} into a directory.",
    )
    init_parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory to create the configuration in (default: current directory)",
    )

    # build subcommand
    subparsers.add_parser(
        "build",
        parents=[common],
        help="Process every configured file",
        description="Substitute variables, select dimension branches and write every destination file.",
    )

    # check subcommand
    subparsers.add_parser(
        "check",
        parents=[common],
        help="Check every configured file without writing anything",
        description="Parse and check every configured file against the decisions (dry run).",
    )

    # query subcommand
    subparsers.add_parser(
        "query",
        parents=[common],
        help="List the dimensions used by the configured files",
        description="Print every declared or used dimension with its choices.",
    )

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    sys.exit(_dispatch(args))


# ################
# Implementation
# ################

_COMMANDS = {
    "build": Command.BUILD,
    "check": Command.CHECK,
    "query": Command.QUERY,
}

_STARTER_CONFIG = """\
# flan configuration

options:
  force: false
  verbosity: 3

variables:
  name: flan

dimensions:
  os: [linux, mac, windows]

paths:
  templates/example.txt: example.txt
"""


def _common_parser() -> argparse.ArgumentParser:
    """Options shared by the build, check and query subcommands."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "decisions",
        nargs="*",
        metavar="DECISION",
        help="A choice name such as `linux`, or an explicit `dimension=choice` such as `os=0`",
    )
    common.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help=f"Configuration file (default: {DEFAULT_CONFIG_NAME} if present)",
    )
    common.add_argument("-f", "--force", action="store_true", help="Overwrite existing destination files")
    common.add_argument(
        "--ignore-unset",
        action="store_true",
        help="Replace unbound variables with nothing instead of reporting them",
    )
    common.add_argument("-i", "--in-prefix", type=Path, default=None, help="Prefix joined to source paths")
    common.add_argument("-o", "--out-prefix", type=Path, default=None, help="Prefix joined to destination paths")
    common.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Also report notes (repeat for more)",
    )
    common.add_argument("--no-warn", action="store_true", help="Only report errors")
    common.add_argument("-z", "--silence", action="store_true", help="Report nothing")
    common.add_argument("--Werror", dest="warn_as_error", action="store_true", help="Treat warnings as errors")
    common.add_argument("--no-extra", action="store_true", help="Omit notes and suggestions attached to diagnostics")
    return common


def _report_level(args: argparse.Namespace) -> int | None:
    """Map the verbosity switches to a report level, or None to defer to the config file."""
    if args.silence:
        return 0
    if args.no_warn:
        return 2
    if args.verbose:
        return min(3 + args.verbose, MAX_VERBOSITY)
    return None


def _dispatch(args: argparse.Namespace) -> int:
    """Dispatch to the appropriate subcommand handler."""
    if args.command == "init":
        return _cmd_init(args)
    if args.command in _COMMANDS:
        return _cmd_run(args, _COMMANDS[args.command])
    return 0


def _cmd_init(args: argparse.Namespace) -> int:
    """Handle the init subcommand."""
    directory = Path(args.directory).resolve()

    if not directory.exists():
        print(f"Error: directory '{directory}' does not exist.", file=sys.stderr)
        return 1

    config_file = directory / DEFAULT_CONFIG_NAME

    if config_file.exists():
        print(
            f"Error: configuration already exists at '{config_file}'.",
            file=sys.stderr,
        )
        return 1

    config_file.write_text(_STARTER_CONFIG, encoding="utf-8")
    print(f"Initialized flan configuration at '{config_file}'.")
    return 0


def _cmd_run(args: argparse.Namespace, command: Command) -> int:
    """Handle the build, check and query subcommands."""
    try:
        file, config = load_config(args.config, args.decisions)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    flags = make_flags(
        file.options,
        command=command,
        verbosity=_report_level(args),
        force=args.force,
        ignore_unset=args.ignore_unset,
        in_prefix=args.in_prefix,
        out_prefix=args.out_prefix,
        warn_as_error=args.warn_as_error,
        no_extra=args.no_extra,
    )
    return run(config, flags)
