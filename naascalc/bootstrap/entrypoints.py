"""
bootstrap/entrypoints.py - Process entry points

setup_logging() configures the root logger from LoggingConfig;
cli_main() is the ``naascalc`` console script.
"""

from __future__ import annotations
from typing import List, Optional, TYPE_CHECKING
import argparse
import json
import logging
import sys

from .config import LoggingConfig, NaaSCalcConfig

if TYPE_CHECKING:
    from naascalc.cli import CommandRegistry

logger = logging.getLogger("naascalc.bootstrap.entrypoints")

EXIT_INTERRUPTED = 130


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Attach handlers to the root logger.

    Console output goes to stderr; stdout is reserved for command output.
    """
    config = config or LoggingConfig()
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = JSONFormatter() if config.json_logs else logging.Formatter(config.format)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))

    root = logging.getLogger()
    root.setLevel(level)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root.addHandler(handler)


def build_parser(commands: "CommandRegistry") -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="naascalc", description="NaaS quote calculation engine")
    parser.add_argument("-c", "--config", help="Path to a JSON configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )
    parser.add_argument("--log-file", help="Also log to this file")

    # every subcommand accepts --json after its own arguments
    output_options = argparse.ArgumentParser(add_help=False)
    output_options.add_argument("--json", action="store_true", help="Print JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for command in commands:
        sub = subparsers.add_parser(
            command.name, help=command.description, parents=[output_options]
        )
        command.configure_parser(sub)
    return parser


def _apply_log_options(config: NaaSCalcConfig, parsed: argparse.Namespace) -> None:
    if parsed.verbose:
        config.logging.level = "DEBUG"
    elif parsed.log_level:
        config.logging.level = parsed.log_level
    elif not config.debug:
        config.logging.level = "WARNING"
    if parsed.log_file:
        config.logging.log_file = parsed.log_file


def cli_main(args: Optional[List[str]] = None) -> int:
    """
    Run one naascalc subcommand.

    Args:
        args: Argument list (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    from naascalc.cli import CLIContext, OutputFormat, build_command_registry, format_output
    from .app import NaaSCalcApp
    from .config import load_config

    commands = build_command_registry()
    parsed = build_parser(commands).parse_args(args)

    try:
        config = load_config(parsed.config)
        _apply_log_options(config, parsed)
        setup_logging(config.logging)

        ctx = CLIContext(
            app=NaaSCalcApp(config=config).build(),
            output_format=OutputFormat.JSON if parsed.json else OutputFormat.TEXT,
            verbose=parsed.verbose,
        )
        result = commands.get(parsed.command).execute(ctx, parsed)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception(f"naascalc {parsed.command} failed: {e}")
        return 1

    print(format_output(result, ctx.output_format))
    return result.exit_code
