"""
cli/ - Command line interface

Subcommands:
- graph: component graph statistics, JSON or Mermaid
- order: topological calculation order
- quote: headless recalculation of a saved quote
- calculators: registered calculators
"""

from .core import (
    CLICommand,
    CLIContext,
    CommandRegistry,
    CommandResult,
    OutputFormat,
    format_output,
)
from .commands import (
    CalculatorsCommand,
    GraphCommand,
    OrderCommand,
    QuoteCommand,
    build_command_registry,
)

__all__ = [
    "CLICommand",
    "CLIContext",
    "CommandRegistry",
    "CommandResult",
    "OutputFormat",
    "format_output",
    "CalculatorsCommand",
    "GraphCommand",
    "OrderCommand",
    "QuoteCommand",
    "build_command_registry",
]
