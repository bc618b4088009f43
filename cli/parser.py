"""Command parser for CLI input."""

import shlex

from cli.models import (
    CommandRequest,
    ListCommand,
    RetryCommand,
    StatusCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/Retry/Status/List)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "retry":
        return _parse_no_args(tokens[1:], "retry", RetryCommand)
    elif command_name == "status":
        return _parse_status(tokens[1:])
    elif command_name == "list":
        return _parse_no_args(tokens[1:], "list", ListCommand)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path> [path ...]' command."""
    if not args:
        raise ParseError("upload requires at least one file")

    return UploadCommand(file_list=tuple(args))


def _parse_status(args: list[str]) -> StatusCommand:
    """Parse 'status <path>' command."""
    if len(args) != 1:
        raise ParseError("status requires exactly 1 argument: <path>")

    return StatusCommand(path=args[0])


def _parse_no_args(args: list[str], name: str, command_type):
    if args:
        raise ParseError(f"{name} takes no arguments")
    return command_type()
