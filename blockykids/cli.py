"""
BlockyKids CLI - Command-line interface for the engine.

Usage:
    blockykids levels [domain]               List domains or a domain's levels
    blockykids validate <level.json>         Validate a level document
    blockykids run <level> <program>         Run a program and check the goal
    blockykids health                        Probe the remote code runner
    blockykids serve                         Start the HTTP API

<level> is a level JSON file, a domain name (first default level) or
domain:index. <program> ending in .py runs on the remote executor;
.json is a block workspace run locally.
"""

import argparse
import asyncio
import json
import sys

from .config import Config
from .logging_utils import configure_logging


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="BlockyKids - Action-trace execution & replay engine",
        prog="blockykids",
    )
    parser.add_argument("--log-level", default=Config.LOG_LEVEL, help="DEBUG, INFO, WARNING, ERROR")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Levels command
    levels_parser = subparsers.add_parser("levels", help="List domains or default levels")
    levels_parser.add_argument("domain", nargs="?", help="Domain name")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a level document")
    validate_parser.add_argument("level_file", help="Path to level JSON file")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a program against a level")
    run_parser.add_argument("level", help="Level JSON file, domain or domain:index")
    run_parser.add_argument("program", help="Program file (.py source or .json blocks)")
    run_parser.add_argument("--fast", action="store_true", help="Replay without pacing")

    # Health command
    subparsers.add_parser("health", help="Probe the remote code runner")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()
    configure_logging(level=args.log_level, json_lines=Config.LOG_JSON)

    if args.command == "levels":
        cmd_levels(args)
    elif args.command == "validate":
        cmd_validate(args)
    elif args.command == "run":
        cmd_run(args)
    elif args.command == "health":
        cmd_health(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def _read_json(path: str):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {path}")
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: {path} is not valid JSON: {e}")
        sys.exit(1)


def cmd_levels(args):
    """List domains, or the default levels of one domain."""
    from .domains import default_registry
    from .domains.defaults import default_levels

    registry = default_registry()
    if not args.domain:
        for domain in registry:
            print(f"{domain.name:10} {domain.title} ({len(default_levels(domain.name))} levels)")
        return

    try:
        levels = default_levels(args.domain)
    except KeyError:
        print(f"Error: Unknown domain '{args.domain}' (known: {', '.join(registry.names())})")
        sys.exit(1)
    for index, level in enumerate(levels):
        print(f"{index:3}  [{level.difficulty.value:6}] {level.name}")


def cmd_validate(args):
    """Validate a level document."""
    from .level_schema import LevelLoadError, load_level, validate_level

    try:
        level = load_level(_read_json(args.level_file))
    except LevelLoadError as e:
        print("FAIL Level failed to load")
        for error in e.errors:
            print(f"  - {error}")
        sys.exit(1)

    result = validate_level(level)
    if result.valid:
        print(f"OK {level.domain} level '{level.name}' is valid")
    else:
        print(f"FAIL {level.domain} level '{level.name}' is invalid")
    for error in result.errors:
        print(f"  - {error}")
    for warning in result.warnings:
        print(f"  ! {warning}")
    if not result.valid:
        sys.exit(1)


def _resolve_level(target: str):
    """Return (domain, levels, index) for a level file, domain or domain:index."""
    from .domains.defaults import default_levels
    from .level_schema import LevelLoadError, load_level

    if target.endswith(".json"):
        try:
            level = load_level(_read_json(target))
        except LevelLoadError as e:
            print(f"Error: {e}")
            sys.exit(1)
        return level.domain, [level], 0

    domain, _, index = target.partition(":")
    try:
        levels = default_levels(domain)
    except KeyError:
        print(f"Error: Unknown domain '{domain}'")
        sys.exit(1)
    try:
        return domain, levels, int(index or 0)
    except ValueError:
        print(f"Error: Level index must be a number, got '{index}'")
        sys.exit(1)


def cmd_run(args):
    """Run a program against a level, replay it and check the goal."""
    from .session import SessionManager

    domain, levels, index = _resolve_level(args.level)
    manager = SessionManager()
    try:
        session = manager.create_session(domain, levels=levels, level_index=index)
    except IndexError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if args.fast:
        session.scheduler.pace = 0

    session.scheduler.subscribe(
        lambda i, action, world: print(f"  {i + 1:3}. {action.describe()}")
    )

    print(f"Level: {session.level.name} ({domain})")
    if args.program.endswith(".py"):
        try:
            with open(args.program, "r", encoding="utf-8") as f:
                source = f.read()
        except FileNotFoundError:
            print(f"Error: File not found: {args.program}")
            sys.exit(1)
        result = asyncio.run(session.run_source(source))
    else:
        result = asyncio.run(session.run_blocks(_read_json(args.program)))

    for line in result.output:
        print(f"  > {line}")
    for warning in result.warnings:
        print(f"  ! {warning}")
    if result.diagnostic:
        location = result.diagnostic.location
        where = ""
        if location and location.line:
            where = f" (line {location.line})"
        elif location and location.block_id:
            where = f" (block {location.block_id})"
        print(f"FAIL {result.diagnostic.kind.value}{where}: {result.diagnostic.message}")

    verdict = session.check()
    print(f"{'OK' if verdict.success else 'FAIL'} {verdict.message}")
    sys.exit(0 if verdict.success else 1)


def cmd_health(args):
    """Probe the remote code runner."""
    from .sandbox import RemoteSandbox

    sandbox = RemoteSandbox(Config.EXECUTOR_URL, health_timeout=Config.HEALTH_TIMEOUT_SECONDS)
    if asyncio.run(sandbox.health()):
        print(f"OK Code runner at {Config.EXECUTOR_URL} is available")
    else:
        print(f"FAIL Code runner at {Config.EXECUTOR_URL} is not answering")
        sys.exit(1)


def cmd_serve(args):
    """Start the HTTP API with uvicorn."""
    import uvicorn

    Config.validate()
    print(Config.display())
    uvicorn.run("blockykids.api.app:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
