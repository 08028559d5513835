"""Rich-based terminal rendering of analyses and batch runs.

:class:`ConsoleDashboard` prints the DuPont decomposition per year, the
narrative (NLP) measures, the accuracy audit, scenario forecasts against
historical averages, and batch / export summaries.  Non-finite ratios (a
zero denominator upstream) render as ``n/a``.
"""

from __future__ import annotations

import math
import sys
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dupont_terminal.domain.enums import AuditStatus, ResolutionSource
from dupont_terminal.domain.reference import METRIC_DEFINITIONS
from dupont_terminal.domain.values import AnalysisResult, Company, Resolution
from dupont_terminal.services.batch import BatchProgress, BatchReport
from dupont_terminal.services.derivation import historical_averages
from dupont_terminal.services.export import ExportReport

_SOURCE_LABELS = {
    ResolutionSource.PRECOMPUTED: "precomputed artifact",
    ResolutionSource.PERSISTED: "local cache",
    ResolutionSource.GENERATED: "fresh analysis",
    ResolutionSource.DEEP_DIVE: "deep-dive re-verification",
}


def _pct(value: float, digits: int = 2) -> str:
    if not math.isfinite(value):
        return "n/a"
    return f"{value * 100:.{digits}f}%"


def _ratio(value: float, digits: int = 2) -> str:
    if not math.isfinite(value):
        return "n/a"
    return f"{value:.{digits}f}x"


def _amount(value: float) -> str:
    if not math.isfinite(value):
        return "n/a"
    return f"{value:,.0f}"


class ConsoleDashboard:
    """Console presentation layer for the terminal.

    Parameters
    ----------
    file:
        Output stream.  Defaults to ``sys.stdout``.
    console:
        Pre-built rich console; overrides *file*.
    """

    def __init__(self, file: Any = None, console: Console | None = None) -> None:
        self._console = console or Console(file=file or sys.stdout)

    @property
    def console(self) -> Console:
        return self._console

    # -- analysis ------------------------------------------------------------

    def print_resolution(self, resolution: Resolution) -> None:
        """Print a full analysis plus where it came from."""
        result = resolution.result
        self._console.print()
        self._console.print(
            f"[bold]{result.company.name}[/bold] ({result.company.symbol}) "
            f"[dim]{result.company.sector} | anchor year {result.anchor_year} | "
            f"{_SOURCE_LABELS[resolution.source]}[/dim]"
        )
        if resolution.discrepancy is not None and resolution.discrepancy.significant:
            self._console.print(
                f"[yellow]Discrepancy detected: {resolution.discrepancy.message}[/yellow]"
            )
        self.print_analysis(result)

    def print_analysis(self, result: AnalysisResult) -> None:
        self.print_dupont_table(result)
        self.print_nlp_table(result)
        self.print_audit(result)
        self.print_forecasts(result)
        for title, text in (
            ("Profitability", result.narrative.section1),
            ("DuPont drivers", result.narrative.section2),
            ("Risk", result.narrative.section3),
            ("Reporting narrative", result.narrative.section4),
        ):
            if text:
                self._console.print(Panel(Text(text), title=title, title_align="left"))
        if result.sources:
            self._console.print("[bold]Sources[/bold]")
            for ref in result.sources:
                self._console.print(f"  - {ref.title}: {ref.uri}", markup=False)
        self._console.print()

    def print_dupont_table(self, result: AnalysisResult) -> None:
        table = Table(title="DuPont decomposition", show_header=True, header_style="bold cyan")
        table.add_column("Year", style="bold")
        table.add_column("Revenue", justify="right")
        table.add_column("Net profit", justify="right")
        table.add_column(METRIC_DEFINITIONS["margin"].short_label, justify="right")
        table.add_column(METRIC_DEFINITIONS["turnover"].short_label, justify="right")
        table.add_column(METRIC_DEFINITIONS["leverage"].short_label, justify="right")
        table.add_column(METRIC_DEFINITIONS["roa"].short_label, justify="right")
        table.add_column(METRIC_DEFINITIONS["roe"].short_label, justify="right", style="bold")
        for m in result.time_series:
            table.add_row(
                str(m.year),
                _amount(m.revenue),
                _amount(m.net_profit),
                _pct(m.margin),
                _ratio(m.turnover),
                _ratio(m.leverage),
                _pct(m.roa),
                _pct(m.roe),
            )
        self._console.print(table)

    def print_nlp_table(self, result: AnalysisResult) -> None:
        if not result.nlp_data:
            return
        table = Table(title="Reporting narrative", show_header=True, header_style="bold cyan")
        table.add_column("Year", style="bold")
        for key in ("sentiment", "fli", "specificity", "sentenceLength", "depth", "unfamiliarity"):
            table.add_column(METRIC_DEFINITIONS[key].short_label, justify="right")
        for year in sorted(result.nlp_data, reverse=True):
            n = result.nlp_data[year]
            table.add_row(
                str(year),
                f"{n.sentiment:.2f}",
                f"{n.forward_looking_info:.2f}",
                f"{n.specificity:.2f}",
                f"{n.sentence_length:.1f}",
                f"{n.depth:.2f}",
                f"{n.unfamiliarity:.2f}",
            )
        self._console.print(table)

    def print_audit(self, result: AnalysisResult) -> None:
        if not result.accuracy_audit:
            return
        table = Table(title="Accuracy audit", show_header=True, header_style="bold cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Year")
        table.add_column("Identified", justify="right")
        table.add_column("Verified", justify="right")
        table.add_column("Variance", justify="right")
        table.add_column("Status", justify="center")
        for entry in result.accuracy_audit:
            colour = "green" if entry.status is AuditStatus.VERIFIED else "yellow"
            table.add_row(
                Text(entry.metric),
                str(entry.year),
                _amount(entry.identified_value),
                _amount(entry.verified_value),
                _pct(entry.variance),
                f"[{colour}]{entry.status.value}[/{colour}]",
            )
        self._console.print(table)
        if result.accuracy_summary:
            self._console.print(Text(f"  {result.accuracy_summary}", style="dim"))

    def print_forecasts(self, result: AnalysisResult) -> None:
        if not result.forecasts:
            return
        averages = historical_averages(result.time_series)
        table = Table(title="Scenario forecasts", show_header=True, header_style="bold cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Historical avg", justify="right")
        table.add_column("Downside", justify="right", style="red")
        table.add_column("Base", justify="right")
        table.add_column("Upside", justify="right", style="green")
        for metric in ("roe", "roa"):
            forecast = result.forecasts.get(metric)
            if forecast is None:
                continue
            table.add_row(
                metric.upper(),
                _pct(averages[metric]),
                _pct(forecast.downside),
                _pct(forecast.base),
                _pct(forecast.upside),
            )
        self._console.print(table)
        if result.forecast_assumptions:
            self._console.print(Text(f"  {result.forecast_assumptions}", style="dim"))

    # -- batch / export ------------------------------------------------------

    def print_progress(self, progress: BatchProgress) -> None:
        if progress.done:
            return
        self._console.print(
            f"  [dim]{progress.completed + 1}/{progress.total}[/dim] {progress.symbol}"
        )

    def print_batch_report(self, report: BatchReport) -> None:
        state = "[yellow]cancelled[/yellow]" if report.cancelled else "[green]complete[/green]"
        self._console.print()
        self._console.print(
            f"[bold]Pre-cache {report.year}[/bold] {state}: "
            f"{report.completed}/{report.total} processed"
        )
        self._console.print(
            f"  generated={len(report.generated)}  skipped={len(report.skipped)}  "
            f"failed={len(report.failed)}"
        )
        for symbol, kind in sorted(report.failed.items()):
            self._console.print(f"  [red]{symbol}[/red] {kind.value}")

    def print_export_report(self, report: ExportReport, path: Any = None) -> None:
        self._console.print(
            f"Collected {report.found}/{report.considered} constituents for {report.year}"
        )
        if path is not None:
            self._console.print(f"  written to [bold]{path}[/bold]")

    # -- misc ----------------------------------------------------------------

    def print_companies(self, companies: Sequence[Company]) -> None:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Symbol", style="bold")
        table.add_column("Name")
        table.add_column("Sector")
        for c in companies:
            table.add_row(c.symbol, c.name, c.sector)
        self._console.print(table)
        self._console.print(f"[dim]{len(companies)} companies[/dim]")

    def print_error(self, message: str) -> None:
        self._console.print(f"[bold red]Error:[/bold red] {message}")
