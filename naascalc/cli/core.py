"""
cli/core.py - Command framework shared by the naascalc subcommands.

A command receives the built application through CLIContext and returns
a CommandResult; rendering to text or JSON happens once, in
format_output(), so commands never print.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, TYPE_CHECKING
import argparse
import json

if TYPE_CHECKING:
    from naascalc.bootstrap.app import NaaSCalcApp


class OutputFormat(Enum):
    TEXT = "text"
    JSON = "json"


@dataclass
class CLIContext:
    """What a command may use: the built app and the output settings."""

    app: "NaaSCalcApp"
    output_format: OutputFormat = OutputFormat.TEXT
    verbose: bool = False


@dataclass
class CommandResult:
    """
    Outcome of one command.

    ``text`` is the rendered human output; ``data`` is what ``--json``
    prints. ``exit_code`` becomes the process status.
    """

    success: bool = True
    message: str = ""
    data: Any = None
    error: Optional[str] = None
    text: Optional[str] = None
    exit_code: int = 0

    @classmethod
    def failure(cls, error: str, exit_code: int = 1) -> "CommandResult":
        return cls(success=False, error=error, exit_code=exit_code)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        del payload["text"]
        return payload


class CLICommand(ABC):
    """One ``naascalc <name>`` subcommand."""

    name: str = ""
    description: str = ""

    def configure_parser(self, parser: argparse.ArgumentParser) -> None:
        """Add command-specific arguments. Default: none."""

    @abstractmethod
    def execute(self, ctx: CLIContext, args: argparse.Namespace) -> CommandResult:
        ...


class CommandRegistry:
    """Subcommands by name, in registration order."""

    def __init__(self):
        self._commands: Dict[str, CLICommand] = {}

    def register(self, command: CLICommand) -> None:
        if not command.name:
            raise ValueError(f"{type(command).__name__} has no name")
        self._commands[command.name] = command

    def get(self, name: str) -> Optional[CLICommand]:
        return self._commands.get(name)

    def __iter__(self) -> Iterator[CLICommand]:
        return iter(list(self._commands.values()))

    def __len__(self) -> int:
        return len(self._commands)


def format_output(result: CommandResult, output_format: OutputFormat) -> str:
    """Render a result for stdout."""
    if output_format is OutputFormat.JSON:
        body = result.data if result.success else result.to_dict()
        return json.dumps(body, indent=2, default=str)

    if not result.success:
        return f"Error: {result.error}"
    if result.text is not None:
        return result.text
    if isinstance(result.data, dict):
        rows = [f"  {key}: {value}" for key, value in result.data.items()]
        return "\n".join([result.message, *rows])
    if result.data is not None:
        return f"{result.message}\n{result.data}"
    return result.message
