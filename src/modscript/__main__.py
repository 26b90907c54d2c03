#!/usr/bin/env python3
"""
CLI for the Mod Script interpreter.

Usage:
    python -m modscript check FILE [--dialect NAME] [--json]
    python -m modscript format FILE [--dialect NAME]
    python -m modscript run FILE --source DIR --target DIR [--dialect NAME] [--yes]
    python -m modscript dialects

Examples:
    # Check syntax and calls against the State of Decay catalog
    python -m modscript check install.ms --dialect stateofdecay

    # Install a mod, answering every prompt with yes / the first option
    python -m modscript run install.ms --source ./mod --target ~/games/sod --yes

Exit status: 0 on success, 1 on errors or a failed run, 2 if the run was
cancelled.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from .config import DEFAULT_CONFIG, InterpreterConfig, load_config
from .errors import CatalogError, ConfigError, DslError
from .runtime.proxy import ABORT, PromptKind, PromptRequest

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ABORTED = 2


def _load_settings(args) -> InterpreterConfig:
    if getattr(args, "config", None):
        return load_config(args.config)
    return DEFAULT_CONFIG


def _read_source(path: str) -> Optional[str]:
    source_path = Path(path)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(encoding="utf-8-sig")


def answer_automatically(request: PromptRequest) -> Any:
    """Prompt handler for --yes: confirm everything, take the first option."""
    if request.kind == PromptKind.CONFIRM:
        return True
    if request.kind == PromptKind.CHOICE:
        return request.choices[0]
    return ""


def answer_interactively(request: PromptRequest) -> Any:
    """Prompt handler that asks on the terminal. 'q' cancels the install."""
    try:
        if request.kind == PromptKind.CONFIRM:
            while True:
                reply = input(f"{request.message} [y/n/q] ").strip().lower()
                if reply in ("y", "yes"):
                    return True
                if reply in ("n", "no"):
                    return False
                if reply == "q":
                    return ABORT
        if request.kind == PromptKind.CHOICE:
            print(request.message)
            for index, choice in enumerate(request.choices, 1):
                print(f"  {index}) {choice}")
            while True:
                reply = input("choice (q to cancel): ").strip()
                if reply == "q":
                    return ABORT
                if reply.isdigit() and 1 <= int(reply) <= len(request.choices):
                    return request.choices[int(reply) - 1]
        return input(f"{request.message} ")
    except EOFError:
        return ABORT


def cmd_check(args) -> int:
    """Check a script for syntax and binding errors."""
    from .dialects import get_dialect

    source = _read_source(args.file)
    if source is None:
        return EXIT_FAILED
    dialect = get_dialect(args.dialect or _load_settings(args).default_dialect)

    try:
        script = dialect.parse(source, filename=args.file)
    except DslError as e:
        if args.json:
            print(json.dumps({"diagnostics": [e.diagnostic.to_json()],
                              "error_count": 1, "warning_count": 0}, indent=2))
        else:
            print(e.diagnostic.format(), file=sys.stderr)
        return EXIT_FAILED

    result = dialect.check(script, source)
    if args.json:
        print(json.dumps(result.to_json(), indent=2))
        return EXIT_FAILED if result.has_errors else EXIT_OK

    for diag in result.diagnostics:
        print(diag.format(), file=sys.stderr)
    if result.has_errors:
        print(f"{len(result.errors)} error(s)", file=sys.stderr)
        return EXIT_FAILED

    print(f"OK: {Path(args.file).name} - {len(script.statements)} statement(s), "
          f"dialect {dialect.name}")
    return EXIT_OK


def cmd_format(args) -> int:
    """Print a script in canonical form."""
    from .dialects import get_dialect
    from .printer import format_script

    source = _read_source(args.file)
    if source is None:
        return EXIT_FAILED
    dialect = get_dialect(args.dialect or _load_settings(args).default_dialect)

    try:
        script = dialect.parse(source, filename=args.file, retain_comments=True)
    except DslError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return EXIT_FAILED
    sys.stdout.write(format_script(script))
    return EXIT_OK


def cmd_run(args) -> int:
    """Run a script against a mod source directory and a target directory."""
    from .dialects import get_dialect

    source = _read_source(args.file)
    if source is None:
        return EXIT_FAILED
    config = _load_settings(args)
    dialect = get_dialect(args.dialect or config.default_dialect)

    try:
        script = dialect.compile(source, filename=args.file)
    except DslError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return EXIT_FAILED

    handler = answer_automatically if args.yes else answer_interactively
    result = dialect.execute(
        script,
        source=source,
        prompt_handler=handler,
        config=config,
        source_root=args.source,
        target_root=args.target,
        game_version=args.game_version,
    )

    for warning in result.warnings:
        print(warning.format(), file=sys.stderr)
    if result.error is not None:
        print(result.error.format(), file=sys.stderr)
    print(result.summary())

    if result.aborted:
        return EXIT_ABORTED
    return EXIT_OK if result.succeeded else EXIT_FAILED


def cmd_dialects(args) -> int:
    """List registered dialects and their functions."""
    from .dialects import get_registry

    for dialect in get_registry():
        definition = dialect.definition
        print(f"{dialect.name} (grammar {dialect.grammar.version})"
              + (f" - {definition.description}" if definition.description else ""))
        for spec in dialect.catalog:
            flags = spec.failure.value + (", prompt" if spec.prompt else "")
            print(f"  {spec.signature}  [{flags}]")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='python -m modscript',
        description='Mod Script checker and runner',
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log debug output')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check a script for errors')
    check_parser.add_argument('file', help='Script file')
    check_parser.add_argument('-d', '--dialect', help='Dialect name')
    check_parser.add_argument('-c', '--config', metavar='FILE', help='YAML configuration file')
    check_parser.add_argument('--json', action='store_true',
                              help='Print diagnostics as JSON')

    # format command
    format_parser = subparsers.add_parser('format', help='Print a script in canonical form')
    format_parser.add_argument('file', help='Script file')
    format_parser.add_argument('-d', '--dialect', help='Dialect name')
    format_parser.add_argument('-c', '--config', metavar='FILE', help='YAML configuration file')

    # run command
    run_parser = subparsers.add_parser('run', help='Run an install script')
    run_parser.add_argument('file', help='Script file')
    run_parser.add_argument('-s', '--source', required=True, metavar='DIR',
                            help='Extracted mod directory')
    run_parser.add_argument('-t', '--target', required=True, metavar='DIR',
                            help='Game installation directory')
    run_parser.add_argument('-d', '--dialect', help='Dialect name')
    run_parser.add_argument('-y', '--yes', action='store_true',
                            help='Answer prompts automatically')
    run_parser.add_argument('-c', '--config', metavar='FILE', help='YAML configuration file')
    run_parser.add_argument('--game-version', default='0',
                            help='Version reported to GameVersion()')

    # dialects command
    subparsers.add_parser('dialects', help='List known dialects')

    args = parser.parse_args(argv)

    try:
        config = _load_settings(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    commands = {
        'check': cmd_check,
        'format': cmd_format,
        'run': cmd_run,
        'dialects': cmd_dialects,
    }
    try:
        return commands[args.action](args)
    except (CatalogError, ConfigError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == '__main__':
    sys.exit(main())
