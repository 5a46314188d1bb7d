"""CLI entry point for apihive.

Handles argument parsing and dispatches to list, resolve, send or history
mode. The CLI is one host of the engine: it loads a workspace, builds the
variable map for the chosen environment and hands drafts to the Executor.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from apihive.config_loader import ConfigError, get_environment, get_request, load_workspace
from apihive.executor import Executor
from apihive.formatting import (
    format_history_line,
    format_status_line,
    mask,
    pretty_body,
)
from apihive.history import HistoryError, HistoryLog
from apihive.models import RequestDraft, ResponseRecord, Settings, Workspace
from apihive.request_builder import apply_query_auth, resolve_request
from apihive.transport import HttpxTransport
from apihive.variables import build_variable_map, find_variables


def positive_float(value: str) -> float:
    """Parse and validate a positive float value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive number.
    """
    try:
        result = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'.")
    if result <= 0:
        raise argparse.ArgumentTypeError(f"Value must be positive, got {result}.")
    return result


def parse_variable(value: str) -> tuple[str, str]:
    """Parse NAME=VALUE format.

    Returns:
        Tuple of (name, value). The value may be empty or contain "=".

    Raises:
        argparse.ArgumentTypeError: If format is invalid.
    """
    if "=" not in value:
        raise argparse.ArgumentTypeError(
            f"Invalid format '{value}'. Expected NAME=VALUE (e.g., 'base_url=http://localhost:8000')"
        )
    name, var_value = value.split("=", 1)
    name = name.strip()
    if not name:
        raise argparse.ArgumentTypeError(
            f"Invalid format '{value}'. Variable name cannot be empty."
        )
    return (name, var_value)


@dataclass
class ListArgs:
    """Parsed arguments for list mode."""

    workspace: Path


@dataclass
class ResolveArgs:
    """Parsed arguments for resolve mode."""

    workspace: Path
    request: str
    env: str | None
    variables: dict[str, str]


@dataclass
class SendArgs:
    """Parsed arguments for send mode."""

    workspace: Path
    request: str
    env: str | None
    variables: dict[str, str]
    timeout: float | None
    history: Path | None
    include_headers: bool
    raw: bool


@dataclass
class HistoryArgs:
    """Parsed arguments for history mode."""

    history: Path
    clear: bool


def _add_request_selectors(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--workspace",
        type=Path,
        required=True,
        help="Path to workspace file (YAML)",
    )
    parser.add_argument(
        "--request",
        type=str,
        required=True,
        help="Name of the request to use (must exist in workspace)",
    )
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help="Name of the active environment (must exist in workspace)",
    )
    parser.add_argument(
        "--var",
        type=parse_variable,
        action="append",
        default=[],
        metavar="NAME=VALUE",
        dest="variables",
        help="Set a variable, overriding the environment (can be repeated)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with list, resolve, send and history subcommands."""
    parser = argparse.ArgumentParser(
        prog="apihive",
        description="Compose, resolve and send HTTP requests from a workspace file.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Log request dispatch details to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Mode")

    list_parser = subparsers.add_parser(
        "list",
        help="List requests and environments in a workspace",
    )
    list_parser.add_argument(
        "--workspace",
        type=Path,
        required=True,
        help="Path to workspace file (YAML)",
    )

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Show the fully resolved request without sending it",
    )
    _add_request_selectors(resolve_parser)

    send_parser = subparsers.add_parser(
        "send",
        help="Send a request and print the response",
    )
    _add_request_selectors(send_parser)
    send_parser.add_argument(
        "--timeout",
        type=positive_float,
        default=None,
        metavar="SECONDS",
        help="Request timeout (default: workspace setting, 30s if unset)",
    )
    send_parser.add_argument(
        "--history",
        type=Path,
        default=None,
        help="History file (JSON) to append this execution to",
    )
    send_parser.add_argument(
        "--include-headers",
        "-i",
        action="store_true",
        default=False,
        dest="include_headers",
        help="Print response headers",
    )
    send_parser.add_argument(
        "--raw",
        action="store_true",
        default=False,
        help="Print the body as received instead of pretty-printing JSON",
    )

    history_parser = subparsers.add_parser(
        "history",
        help="Show recorded executions, most recent first",
    )
    history_parser.add_argument(
        "--history",
        type=Path,
        required=True,
        help="History file (JSON)",
    )
    history_parser.add_argument(
        "--clear",
        action="store_true",
        default=False,
        help="Empty the history file",
    )

    return parser


def _build_variables(pairs: list[tuple[str, str]]) -> dict[str, str]:
    """Build variable override dict, warning on duplicates."""
    result: dict[str, str] = {}
    for name, value in pairs:
        if name in result:
            print(
                f"Warning: --var '{name}' specified multiple times, using last value",
                file=sys.stderr,
            )
        result[name] = value
    return result


def parse_args(args: list[str] | None = None) -> tuple[ListArgs | ResolveArgs | SendArgs | HistoryArgs, bool]:
    """Parse command-line arguments and return typed args dataclass.

    Args:
        args: Command-line arguments to parse. If None, uses sys.argv[1:].

    Returns:
        Tuple of (args dataclass for the subcommand, verbose flag).

    Raises:
        SystemExit: If arguments are invalid (argparse behavior).
    """
    parser = build_parser()
    namespace = parser.parse_args(args)

    parsed: ListArgs | ResolveArgs | SendArgs | HistoryArgs
    if namespace.command == "list":
        parsed = ListArgs(workspace=namespace.workspace)
    elif namespace.command == "resolve":
        parsed = ResolveArgs(
            workspace=namespace.workspace,
            request=namespace.request,
            env=namespace.env,
            variables=_build_variables(namespace.variables or []),
        )
    elif namespace.command == "send":
        parsed = SendArgs(
            workspace=namespace.workspace,
            request=namespace.request,
            env=namespace.env,
            variables=_build_variables(namespace.variables or []),
            timeout=namespace.timeout,
            history=namespace.history,
            include_headers=namespace.include_headers,
            raw=namespace.raw,
        )
    elif namespace.command == "history":
        parsed = HistoryArgs(history=namespace.history, clear=namespace.clear)
    else:
        # Should not happen with required=True on subparsers
        parser.error(f"Unknown command: {namespace.command}")

    return parsed, namespace.verbose


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        parsed, verbose = parse_args(argv)
        configure_logging(verbose)

        if isinstance(parsed, ListArgs):
            return run_list(parsed)
        elif isinstance(parsed, ResolveArgs):
            return run_resolve(parsed)
        elif isinstance(parsed, SendArgs):
            return run_send(parsed)
        else:
            return run_history(parsed)

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 1


def _load_selection(
    workspace_path: Path,
    request_name: str,
    env_name: str | None,
    overrides: dict[str, str],
) -> tuple[Workspace, RequestDraft, dict[str, str]]:
    """Load the workspace and pick the draft plus its variable map.

    Raises:
        ConfigError: If the workspace, request or environment cannot be found.
    """
    workspace = load_workspace(workspace_path)
    draft = get_request(workspace, request_name)
    variables: dict[str, str] = {}
    if env_name is not None:
        variables = build_variable_map(get_environment(workspace, env_name).variables)
    variables.update(overrides)
    return workspace, draft, variables


def _warn_missing_variables(draft: RequestDraft, variables: dict[str, str]) -> None:
    """Warn about placeholders that will resolve to the empty string."""
    templates = [draft.url]
    for entry in [*draft.params, *draft.headers, *(draft.form_fields or [])]:
        if entry.enabled:
            templates.extend([entry.key, entry.value])

    missing: list[str] = []
    for template in templates:
        for name in find_variables(template):
            if name not in variables and name not in missing:
                missing.append(name)

    if missing:
        print(
            f"Warning: undefined variables resolve to empty: {', '.join(missing)}",
            file=sys.stderr,
        )


def run_list(args: ListArgs) -> int:
    """Run list mode.

    Returns:
        Exit code: 0 for success, 1 for error.
    """
    try:
        workspace = load_workspace(args.workspace)
    except ConfigError as e:
        print(f"Error loading workspace: {e}", file=sys.stderr)
        return 1

    print("Requests:")
    if not workspace.requests:
        print("  (none)")
    for draft in workspace.requests:
        print(f"  {draft.method:<7} {draft.name}")
        print(f"          {draft.url}")

    print()
    print("Environments:")
    if not workspace.environments:
        print("  (none)")
    for environment in workspace.environments:
        print(f"  {environment.name}")
        for variable in environment.variables:
            if not variable.key.strip():
                continue
            state = "" if variable.enabled else " (disabled)"
            value = mask(variable.current_value, variable.sensitive)
            print(f"    {variable.key.strip()} = {value}{state}")

    return 0


def run_resolve(args: ResolveArgs) -> int:
    """Run resolve mode: print the request that send would dispatch.

    Returns:
        Exit code: 0 for success, 1 for error.
    """
    try:
        _, draft, variables = _load_selection(args.workspace, args.request, args.env, args.variables)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _warn_missing_variables(draft, variables)

    resolved = resolve_request(draft, variables)
    url = apply_query_auth(resolved.url.strip(), draft.auth)

    print(f"{resolved.method} {url}")
    for name, value in resolved.headers.items():
        print(f"{name}: {value}")
    if resolved.body is not None:
        print()
        print(resolved.body)

    return 0


def run_send(args: SendArgs) -> int:
    """Run send mode.

    Returns:
        Exit code: 0 if a server responded (any status), 1 otherwise.
    """
    try:
        workspace, draft, variables = _load_selection(
            args.workspace, args.request, args.env, args.variables
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    settings = workspace.settings
    if args.timeout is not None:
        settings = settings.model_copy(update={"timeout": args.timeout})

    history: HistoryLog | None = None
    if args.history is not None:
        try:
            history = HistoryLog.load(args.history, capacity=settings.history_limit)
        except HistoryError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    _warn_missing_variables(draft, variables)

    record = asyncio.run(_send(draft, variables, settings, history))

    print(format_status_line(record))
    if args.include_headers:
        for name, value in record.headers.items():
            print(f"{name}: {value}")
    print()
    print(record.body if args.raw else pretty_body(record.body))

    if history is not None and args.history is not None:
        try:
            history.save(args.history)
        except HistoryError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    return 1 if record.is_synthetic else 0


async def _send(
    draft: RequestDraft,
    variables: dict[str, str],
    settings: Settings,
    history: HistoryLog | None,
) -> ResponseRecord:
    async with HttpxTransport(settings) as transport:
        executor = Executor(transport, history=history)
        return await executor.execute(draft, variables)


def run_history(args: HistoryArgs) -> int:
    """Run history mode.

    Returns:
        Exit code: 0 for success, 1 for error.
    """
    try:
        history = HistoryLog.load(args.history, capacity=None)
        if args.clear:
            history.clear()
            history.save(args.history)
            print("History cleared")
            return 0
    except HistoryError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    entries = history.entries
    if not entries:
        print("No history")
        return 0
    for entry in entries:
        print(format_history_line(entry))
    print()
    print(f"Total: {len(entries)} executions")
    return 0


if __name__ == "__main__":
    sys.exit(main())
