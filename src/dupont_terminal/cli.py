"""Command-line interface for the DuPont terminal.

Subcommands resolve a single analysis, pre-cache the whole universe for a
year, export every cached analysis as a bulk artifact, list the company
index, and print environment information.  The chat model is only built
when a subcommand may need to generate.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    dupont-terminal = "dupont_terminal.cli:main"

Usage examples::

    dupont-terminal analyze SHEL --year 2024
    dupont-terminal analyze BARC --refresh
    dupont-terminal precache --year 2023
    dupont-terminal export --year 2023 --output precomputedData.json
    dupont-terminal companies --search bank
    dupont-terminal --config terminal.json info
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from dupont_terminal.domain.exceptions import (
    DuPontTerminalError,
    NothingToExportError,
    classify_failure,
    user_message,
)
from dupont_terminal.domain.reference import COMPANIES, YEARS, find_company, search_companies
from dupont_terminal.infrastructure.cache_store import (
    FileKeyValueStore,
    PersistedAnalysisCache,
    PrecomputedStore,
)
from dupont_terminal.infrastructure.config import AppConfig, load_app_config
from dupont_terminal.infrastructure.event_bus import EventBus
from dupont_terminal.presentation.console import ConsoleDashboard
from dupont_terminal.services.batch import BatchPreCacheController, CancellationToken
from dupont_terminal.services.export import ExportCollector, write_export
from dupont_terminal.services.fact_provider import FactProvider, LLMFactProvider
from dupont_terminal.services.resolver import TieredCacheResolver

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="dupont-terminal",
        description=(
            "DuPont terminal -- verified DuPont decomposition and reporting "
            "narrative analysis for FTSE 100 constituents."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file. (default: built-in defaults)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- analyze -----------------------------------------------------------
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Show the analysis of one company.",
        description="Resolve one analysis from the caches, generating it on a miss.",
    )
    analyze_parser.add_argument("symbol", type=str, help="Ticker symbol, e.g. SHEL.")
    analyze_parser.add_argument(
        "--year",
        type=int,
        default=YEARS[0],
        choices=YEARS,
        help=f"Anchor year. (default: {YEARS[0]})",
    )
    analyze_parser.add_argument(
        "--refresh",
        action="store_true",
        default=False,
        help="Bypass the caches and regenerate, re-verifying on large shifts.",
    )

    # -- precache ----------------------------------------------------------
    precache_parser = subparsers.add_parser(
        "precache",
        help="Pre-cache every company for one year.",
        description=(
            "Generate and persist the analysis of every company not yet "
            "cached.  Ctrl-C stops after the current company."
        ),
    )
    precache_parser.add_argument(
        "--year",
        type=int,
        default=YEARS[0],
        choices=YEARS,
        help=f"Anchor year. (default: {YEARS[0]})",
    )

    # -- export ------------------------------------------------------------
    export_parser = subparsers.add_parser(
        "export",
        help="Export every cached analysis for one year.",
        description="Collect cached analyses into a precomputed bulk artifact.",
    )
    export_parser.add_argument(
        "--year",
        type=int,
        default=YEARS[0],
        choices=YEARS,
        help=f"Anchor year. (default: {YEARS[0]})",
    )
    export_parser.add_argument(
        "--output",
        type=str,
        default="precomputedData.json",
        help="Output file. (default: precomputedData.json)",
    )

    # -- companies ---------------------------------------------------------
    companies_parser = subparsers.add_parser(
        "companies",
        help="List the company index.",
        description="List FTSE 100 constituents, optionally filtered.",
    )
    companies_parser.add_argument(
        "--search",
        type=str,
        default="",
        help="Case-insensitive substring of the name or symbol.",
    )

    # -- info --------------------------------------------------------------
    subparsers.add_parser(
        "info",
        help="Show configuration and installed providers.",
        description="Display version, effective configuration and optional dependencies.",
    )

    return parser


# =========================================================================
# Wiring
# =========================================================================

def _make_provider(config: AppConfig) -> FactProvider:
    """Build the LLM-backed fact provider described by *config*."""
    from dupont_terminal.infrastructure.llm import create_chat_model

    return LLMFactProvider(create_chat_model(config.provider))


def _build_resolver(config: AppConfig, event_bus: EventBus) -> TieredCacheResolver:
    persisted = PersistedAnalysisCache(
        FileKeyValueStore(config.cache.cache_dir), namespace=config.cache.namespace
    )
    precomputed = PrecomputedStore.load(config.cache.precomputed_path or None)
    return TieredCacheResolver.from_config(
        _make_provider(config),
        config,
        persisted,
        precomputed=precomputed,
        event_bus=event_bus,
    )


def _report_failure(dashboard: ConsoleDashboard, exc: BaseException) -> int:
    kind = classify_failure(exc)
    logger.debug("cli: %s failure: %s", kind.value, exc)
    dashboard.print_error(user_message(kind))
    return 1


# =========================================================================
# Subcommand handlers
# =========================================================================

def _cmd_analyze(args: argparse.Namespace, config: AppConfig, dashboard: ConsoleDashboard) -> int:
    """Handle the ``analyze`` subcommand."""
    company = find_company(args.symbol)
    if company is None:
        dashboard.print_error(f"Unknown symbol {args.symbol!r}.")
        return 2

    resolver = _build_resolver(config, EventBus())
    try:
        resolution = asyncio.run(
            resolver.resolve(company, args.year, force_refresh=args.refresh)
        )
    except DuPontTerminalError as exc:
        return _report_failure(dashboard, exc)

    dashboard.print_resolution(resolution)
    return 0


async def _run_batch(controller: BatchPreCacheController, year: int) -> Any:
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        pass
    try:
        return await controller.run(year, token)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def _cmd_precache(args: argparse.Namespace, config: AppConfig, dashboard: ConsoleDashboard) -> int:
    """Handle the ``precache`` subcommand."""
    event_bus = EventBus()
    controller = BatchPreCacheController(
        _build_resolver(config, event_bus),
        companies=COMPANIES,
        config=config.batch,
        event_bus=event_bus,
        on_progress=dashboard.print_progress,
    )
    report = asyncio.run(_run_batch(controller, args.year))
    dashboard.print_batch_report(report)
    return 0


def _cmd_export(args: argparse.Namespace, config: AppConfig, dashboard: ConsoleDashboard) -> int:
    """Handle the ``export`` subcommand."""
    persisted = PersistedAnalysisCache(
        FileKeyValueStore(config.cache.cache_dir), namespace=config.cache.namespace
    )
    precomputed = PrecomputedStore.load(config.cache.precomputed_path or None)
    collector = ExportCollector(persisted, precomputed)
    try:
        report = collector.collect(args.year)
    except NothingToExportError:
        dashboard.print_error(
            "No analysis data found in either cache. Run 'precache' first to "
            "perform the analysis for all constituents."
        )
        return 1
    path = write_export(report, Path(args.output))
    dashboard.print_export_report(report, path)
    return 0


def _cmd_companies(args: argparse.Namespace, config: AppConfig, dashboard: ConsoleDashboard) -> int:
    """Handle the ``companies`` subcommand."""
    dashboard.print_companies(search_companies(args.search))
    return 0


def _cmd_info(args: argparse.Namespace, config: AppConfig, dashboard: ConsoleDashboard) -> int:
    """Handle the ``info`` subcommand."""
    from dupont_terminal import __version__

    console = dashboard.console
    console.print(f"[bold]dupont-terminal {__version__}[/bold]")
    console.print(f"Python {sys.version.split()[0]}")
    console.print()
    console.print("[bold]Configuration:[/bold]")
    for section, values in config.to_dict().items():
        console.print(f"  {section}: {values}", markup=False)
    console.print()

    optional_deps = {
        "langchain_google_genai": "Google Gemini provider",
        "langchain_anthropic": "Anthropic provider",
        "langchain_openai": "OpenAI provider",
    }
    console.print("[bold]Providers:[/bold]")
    for pkg, desc in optional_deps.items():
        try:
            mod = __import__(pkg)
            version = getattr(mod, "__version__", "unknown")
            console.print(f"  [installed] {pkg} {version} -- {desc}", markup=False)
        except ImportError:
            console.print(f"  [missing]   {pkg} -- {desc}", markup=False)
    console.print()
    console.print(f"Universe: {len(COMPANIES)} companies, years {', '.join(map(str, YEARS))}")
    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from dupont_terminal import __version__
        print(f"dupont-terminal {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handlers: dict[str, Any] = {
        "analyze": _cmd_analyze,
        "precache": _cmd_precache,
        "export": _cmd_export,
        "companies": _cmd_companies,
        "info": _cmd_info,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    dashboard = ConsoleDashboard()
    try:
        config = load_app_config(args.config)
        exit_code = handler(args, config, dashboard)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
