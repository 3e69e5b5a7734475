"""
Creative Canvas - Command line entry point.

Usage:
    python -m creative_canvas validate graph.json
    python -m creative_canvas plan graph.json --target export-1
    python -m creative_canvas run graph.json --simulate
    python -m creative_canvas models --refresh
    python -m creative_canvas node-types --category fashion

Exit codes: 0 on success, 1 when validation or a run fails, 2 on usage
errors (bad arguments, unreadable files, unknown targets).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from creative_canvas.core.data_types import NodeCategory
from creative_canvas.core.execution import ExecutionCoordinator, FailurePolicy, RunResult, StatusChange
from creative_canvas.core.graph import NodeGraph
from creative_canvas.core.node_types import NodeRegistry
from creative_canvas.core.planner import ExecutionPlan, ExecutionPlanner
from creative_canvas.core.settings import ExecutionSettings, load_settings
from creative_canvas.core.validation import GraphValidationResult, GraphValidator
from creative_canvas.core.workspace import load_graph
from creative_canvas.nodes import register_all_nodes
from creative_canvas.providers.base import GenerationService, ProviderConfig
from creative_canvas.providers.catalog import ModelCatalog
from creative_canvas.providers.download import DEFAULT_OUTPUT_DIR, DownloadError, download_output
from creative_canvas.providers.http import HttpGenerationService
from creative_canvas.providers.simulated import SimulatedGenerationService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


class UsageError(Exception):
    """Bad input from the command line; reported with exit code 2."""
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="creative_canvas",
        description="Validate, plan and run Creative Canvas node graphs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--settings", type=Path, default=None, help="Path to a settings JSON file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="Check a graph for problems")
    validate_parser.add_argument("file", type=Path, help="Graph JSON file")
    validate_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    plan_parser = subparsers.add_parser("plan", help="Show the execution order of a graph")
    plan_parser.add_argument("file", type=Path, help="Graph JSON file")
    plan_parser.add_argument(
        "--target", action="append", default=None, metavar="NODE",
        help="Only plan this node and its upstream nodes (repeatable)",
    )
    plan_parser.add_argument("--json", action="store_true", help="Print the plan as JSON")

    run_parser = subparsers.add_parser("run", help="Execute a graph")
    run_parser.add_argument("file", type=Path, help="Graph JSON file")
    run_parser.add_argument(
        "--simulate", action="store_true",
        help="Use the in-process simulated service instead of the HTTP backend",
    )
    run_parser.add_argument(
        "--policy", choices=[p.value for p in FailurePolicy], default=None,
        help="Failure policy (overrides settings)",
    )
    run_parser.add_argument(
        "--timeout", type=float, default=None, metavar="SECONDS",
        help="Per-job timeout (overrides settings)",
    )
    run_parser.add_argument(
        "--target", action="append", default=None, metavar="NODE",
        help="Only run this node and its upstream nodes (repeatable)",
    )
    run_parser.add_argument(
        "--save-outputs", type=Path, nargs="?", const=DEFAULT_OUTPUT_DIR, default=None,
        metavar="DIR",
        help=f"Download the outputs of output nodes into DIR (default {DEFAULT_OUTPUT_DIR})",
    )
    run_parser.add_argument("--json", action="store_true", help="Print the run result as JSON")

    models_parser = subparsers.add_parser("models", help="List available models")
    models_parser.add_argument(
        "--refresh", action="store_true",
        help="Ask the generation service instead of showing built-in models",
    )
    models_parser.add_argument(
        "--simulate", action="store_true", help="Query the simulated service (with --refresh)",
    )

    types_parser = subparsers.add_parser("node-types", help="List registered node types")
    types_parser.add_argument(
        "--category", choices=[c.value for c in NodeCategory], default=None,
        help="Only list this category",
    )

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_service(settings: ExecutionSettings, simulate: bool) -> GenerationService:
    """Create the generation service a command talks to."""
    if simulate:
        return SimulatedGenerationService()
    config = ProviderConfig(api_key=settings.api_key, base_url=settings.service_url)
    return HttpGenerationService(config)


def _load(path: Path) -> NodeGraph:
    try:
        return load_graph(path)
    except (FileNotFoundError, ValueError) as e:
        raise UsageError(str(e)) from e


def _print_issues(result: GraphValidationResult) -> None:
    for issue in result.issues:
        location = f" ({issue.node_id})" if issue.node_id else ""
        print(f"{issue.severity.value.upper()}: [{issue.type.value}]{location} {issue.message}")
        if issue.suggestion:
            print(f"    hint: {issue.suggestion}")


# ============================================================================
# Commands
# ============================================================================

def cmd_validate(args: argparse.Namespace, settings: ExecutionSettings) -> int:
    graph = _load(args.file)
    result = GraphValidator().validate(graph)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_issues(result)
        verdict = "valid" if result.valid else "invalid"
        print(
            f"Graph '{graph.name}' is {verdict}: "
            f"{len(result.errors)} error(s), {len(result.warnings)} warning(s)"
        )

    return EXIT_OK if result.valid else EXIT_FAILED


def cmd_plan(args: argparse.Namespace, settings: ExecutionSettings) -> int:
    graph = _load(args.file)
    try:
        plan = ExecutionPlanner().plan(graph, args.target)
    except KeyError as e:
        raise UsageError(str(e.args[0])) from e

    if args.json:
        print(json.dumps(plan.to_dict(), indent=2))
    elif plan.has_cycles:
        print("Graph contains a cycle; no execution order exists")
    else:
        for index, group in enumerate(plan.parallel_groups, start=1):
            labels = ", ".join(graph.get_node(nid).display_name for nid in group)
            print(f"Wave {index}: {labels}")

    return EXIT_FAILED if plan.has_cycles else EXIT_OK


def cmd_run(args: argparse.Namespace, settings: ExecutionSettings) -> int:
    graph = _load(args.file)

    validation = GraphValidator().validate(graph)
    if not validation.valid:
        _print_issues(validation)
        print("Graph is invalid; not running")
        return EXIT_FAILED

    if args.timeout is not None:
        if args.timeout <= 0:
            raise UsageError("--timeout must be positive")
        settings.job_timeout = args.timeout
    policy = FailurePolicy(args.policy) if args.policy else None

    try:
        plan = ExecutionPlanner().plan(graph, args.target)
    except KeyError as e:
        raise UsageError(str(e.args[0])) from e

    result = asyncio.run(
        _run_graph(graph, plan, settings, policy, args.simulate, quiet=args.json)
    )

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        for error in result.errors:
            where = error.node_id or "run"
            print(f"ERROR [{error.code}] {where}: {error.message}")
        print(f"Run {result.run_id} {result.status.value} in {result.duration:.1f}s")

    if args.save_outputs is not None and not _save_outputs(graph, result, args.save_outputs):
        return EXIT_FAILED

    return EXIT_OK if result.succeeded else EXIT_FAILED


async def _run_graph(
    graph: NodeGraph,
    plan: ExecutionPlan,
    settings: ExecutionSettings,
    policy: FailurePolicy | None,
    simulate: bool,
    quiet: bool = False,
) -> RunResult:
    def report(change: StatusChange) -> None:
        if change.old_status is change.new_status:
            return
        node = graph.get_node(change.node_id)
        name = node.display_name if node else change.node_id
        print(f"  {name}: {change.old_status.value} -> {change.new_status.value}")

    async with create_service(settings, simulate) as service:
        coordinator = ExecutionCoordinator(
            service,
            settings=settings,
            policy=policy,
            on_status_change=None if quiet else report,
        )
        return await coordinator.run(graph, plan)


def _save_outputs(graph: NodeGraph, result: RunResult, directory: Path) -> bool:
    # Output nodes pass content through; save what feeds them
    async def save() -> bool:
        ok = True
        for node in graph.nodes:
            if not node.category.is_terminal or node.id not in result.outputs:
                continue
            add_timestamp = bool(node.get_parameter("addTimestamp", False))
            for source_id in graph.predecessors(node.id):
                output = result.outputs.get(source_id)
                if output is None:
                    continue
                filename = f"{node.display_name}_{graph.get_node(source_id).display_name}"
                try:
                    paths = await download_output(
                        output, directory, filename=filename, add_timestamp=add_timestamp,
                    )
                except (DownloadError, OSError) as e:
                    logger.error("Could not save output of %s: %s", source_id, e)
                    ok = False
                    continue
                for path in paths:
                    print(f"Saved {path}")
        return ok

    return asyncio.run(save())


def cmd_models(args: argparse.Namespace, settings: ExecutionSettings) -> int:
    async def list_models():
        if not args.refresh:
            return await ModelCatalog(ttl=settings.model_cache_ttl).models(), True
        async with create_service(settings, args.simulate) as service:
            catalog = ModelCatalog(fetcher=service.list_models, ttl=settings.model_cache_ttl)
            models = await catalog.refresh()
            return models, catalog.using_fallback

    models, fallback = asyncio.run(list_models())
    if args.refresh and fallback:
        print("Model discovery unavailable; showing built-in models")

    for model in models:
        extra = f" [{model.tier}]" if model.tier else ""
        print(f"{model.kind.value:6} {model.id:45} {model.name}{extra}")
    return EXIT_OK


def cmd_node_types(args: argparse.Namespace, settings: ExecutionSettings) -> int:
    registry = NodeRegistry.instance()
    if args.category:
        definitions = registry.list_by_category(NodeCategory(args.category))
    else:
        definitions = registry.get_all()

    for definition in definitions:
        print(f"{definition.category.value:10} {definition.type:20} {definition.label}")
    return EXIT_OK


COMMANDS = {
    "validate": cmd_validate,
    "plan": cmd_plan,
    "run": cmd_run,
    "models": cmd_models,
    "node-types": cmd_node_types,
}


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for Creative Canvas.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return EXIT_USAGE if e.code else EXIT_OK

    configure_logging(args.verbose)
    settings = load_settings(args.settings)
    register_all_nodes()

    try:
        return COMMANDS[args.command](args, settings)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
