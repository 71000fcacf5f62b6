"""
cli/commands.py - CLI command implementations
"""

from __future__ import annotations
from typing import Any, Dict, List
import argparse
import asyncio
import json
from pathlib import Path

from .core import CLICommand, CLIContext, CommandRegistry, CommandResult
from naascalc.errors import NaaSCalcError, UnknownComponentError


def _format_money(value: float) -> str:
    return f"${value:,.2f}"


class GraphCommand(CLICommand):
    """Show the component graph."""

    name = "graph"
    description = "Show component graph statistics or a diagram"

    def configure_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--mermaid", action="store_true", help="Print a Mermaid diagram"
        )

    def execute(self, ctx: CLIContext, args: argparse.Namespace) -> CommandResult:
        graph = ctx.app.graph
        if args.mermaid:
            return CommandResult(text=graph.generate_mermaid(), data=graph.generate_mermaid())

        stats = graph.get_statistics()
        lines = [f"Components: {stats['total_components']} (max level {stats['max_level']})"]
        for cid in graph.component_ids:
            definition = graph.get_definition(cid)
            deps = ", ".join(str(d) for d in definition.dependencies) or "-"
            lines.append(f"  L{graph.get_level(cid)}  {cid:<18} <- {deps}")
        return CommandResult(
            text="\n".join(lines),
            data={"statistics": stats, "graph": graph.generate_visualization_data()},
        )


class OrderCommand(CLICommand):
    """Print the calculation order for a set of components."""

    name = "order"
    description = "Topological calculation order of the given components"

    def configure_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("ids", nargs="+", help="Component ids")
        parser.add_argument(
            "--closure",
            action="store_true",
            help="Include every component downstream of the given ids",
        )

    def execute(self, ctx: CLIContext, args: argparse.Namespace) -> CommandResult:
        graph = ctx.app.graph
        try:
            candidates = set(args.ids)
            if args.closure:
                for cid in args.ids:
                    candidates |= graph.get_affected_closure(cid)
            order = graph.topological_order(sorted(candidates))
        except UnknownComponentError as e:
            return CommandResult.failure(str(e), exit_code=2)

        return CommandResult(
            text=" -> ".join(order),
            data={"order": order, "levels": {cid: graph.get_level(cid) for cid in order}},
        )


class QuoteCommand(CLICommand):
    """Price a saved quote file."""

    name = "quote"
    description = "Recalculate a saved quote and print the totals"

    def configure_parser(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("path", help="Quote JSON file")

    def execute(self, ctx: CLIContext, args: argparse.Namespace) -> CommandResult:
        path = Path(args.path)
        if not path.exists():
            return CommandResult.failure(f"File not found: {path}")

        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            return CommandResult.failure(f"Invalid JSON: {e}")
        if not isinstance(data, dict):
            return CommandResult.failure("Quote file must hold an object")

        try:
            quote = asyncio.run(ctx.app.calculate_quote(data))
        except NaaSCalcError as e:
            return CommandResult.failure(str(e))

        results = ctx.app.orchestrator.get_results()
        payload: Dict[str, Any] = quote.to_dict()
        payload["components"] = {
            cid: results[cid].to_dict()
            for cid in ctx.app.graph.component_ids
            if cid in results and ctx.app.store.is_component_enabled(cid)
        }
        return CommandResult(
            text=self._render(ctx, quote, results),
            data=payload,
            exit_code=0 if quote.is_complete else 3,
        )

    def _render(self, ctx: CLIContext, quote, results) -> str:
        graph = ctx.app.graph
        lines: List[str] = [
            f"{'Component':<28}{'One-time':>14}{'Monthly':>14}{'3-Year':>16}"
        ]
        for cid in graph.component_ids:
            result = results.get(cid)
            if result is None or not ctx.app.store.is_component_enabled(cid):
                continue
            t = result.totals
            name = graph.get_display_name(cid)
            if result.is_error:
                name += " (failed)"
            elif cid in quote.excluded:
                name += " (contract)"
            lines.append(
                f"{name[:27]:<28}{_format_money(t.one_time):>14}"
                f"{_format_money(t.monthly):>14}{_format_money(t.three_year):>16}"
            )

        d = quote.discounts
        lines.append("")
        lines.append(
            f"Discounts: monthly {d.monthly_discount:.1%}, annual {d.annual_discount:.1%}, "
            f"term {d.term_discount:.1%}"
        )
        t = quote.totals
        lines.append(f"One-time total: {_format_money(t.one_time)}")
        lines.append(f"Monthly total:  {_format_money(t.monthly)}")
        lines.append(f"Annual total:   {_format_money(t.annual)}")
        lines.append(f"3-Year total:   {_format_money(t.three_year)}")
        if quote.failed:
            lines.append(f"Failed: {', '.join(quote.failed)}")
        return "\n".join(lines)


class CalculatorsCommand(CLICommand):
    """Show calculator registrations."""

    name = "calculators"
    description = "List registered calculators"

    def execute(self, ctx: CLIContext, args: argparse.Namespace) -> CommandResult:
        registry = ctx.app.registry
        data = {ct: registry.get_metadata(ct) for ct in registry.list_calculators()}
        lines = [f"{ct:<18} {meta.get('description', '')}" for ct, meta in data.items()]
        return CommandResult(text="\n".join(lines), data=data)


def build_command_registry() -> CommandRegistry:
    registry = CommandRegistry()
    for command in (GraphCommand(), OrderCommand(), QuoteCommand(), CalculatorsCommand()):
        registry.register(command)
    return registry
