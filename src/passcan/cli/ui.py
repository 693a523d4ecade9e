"""
UI components for passcan output.

Renders findings, scan summaries, skipped files, watch-mode deltas and the
rule catalog with Rich.
"""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from passcan.core.matcher import Finding
from passcan.core.report import Report
from passcan.core.rules import RuleSet, Severity
from passcan.services.scan_models import FlushResult

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
}

# Skipped files listed before collapsing into a count
MAX_SKIPPED_SHOWN = 5


def display_path(path: str, root: Path | str | None) -> str:
    """Path relative to the scan root when possible."""
    if root is None:
        return path
    try:
        return Path(path).relative_to(Path(root)).as_posix()
    except ValueError:
        return path


def severity_text(severity: Severity) -> Text:
    return Text(severity.value.upper(), style=SEVERITY_STYLES.get(severity, ""))


def render_findings(console: Console, findings: list[Finding], root: Path | str | None = None) -> None:
    """
    Render findings as a table, one row per finding.

    Args:
        console: Rich Console instance for output.
        findings: Findings ordered by path, line and column.
        root: Scan root used to shorten paths.
    """
    table = Table(show_header=True, header_style="bold", expand=False)
    table.add_column("Severity")
    table.add_column("Rule")
    table.add_column("Location", style="cyan")
    table.add_column("Match")
    table.add_column("Confidence", justify="right")

    for finding in findings:
        location = f"{display_path(finding.path, root)}:{finding.line}:{finding.column}"
        table.add_row(
            severity_text(finding.severity),
            escape(finding.rule_label),
            escape(location),
            Text(finding.match, style="magenta"),
            f"{finding.confidence:.2f}",
        )

    console.print(table)


def render_summary(console: Console, report: Report) -> None:
    """Render the scan summary panel."""
    summary = report.summary()

    grid = Table.grid(padding=1)
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("Files Scanned:", str(summary["files_scanned"]))
    grid.add_row("Files with Secrets:", str(summary["files_with_findings"]))
    grid.add_row("Total Secrets:", str(summary["total_findings"]))
    if summary["files_skipped"]:
        grid.add_row("Files Skipped:", f"[yellow]{summary['files_skipped']}[/yellow]")
    grid.add_row("Duration:", f"{summary['duration_seconds']:.2f}s")
    if report.metadata.cancelled:
        grid.add_row("Status:", "[yellow]cancelled[/yellow]")

    if summary["total_findings"]:
        title, border = "[bold red]Secrets Found[/bold red]", "red"
    else:
        title, border = "[bold green]No Secrets Found[/bold green]", "green"

    console.print(Panel(grid, title=title, border_style=border, expand=False))


def render_skipped(console: Console, report: Report, verbose: bool = False) -> None:
    """List skipped files with their reason; truncated unless verbose."""
    skipped = report.skipped
    if not skipped:
        return

    root = report.metadata.root_path
    shown = skipped if verbose else skipped[:MAX_SKIPPED_SHOWN]
    console.print("\n[bold yellow]Skipped Files:[/bold yellow]")
    for entry in shown:
        console.print(f"  - {escape(display_path(entry.path, root))} [dim]({entry.reason.value})[/dim]")
    if len(skipped) > len(shown):
        console.print(f"  ... and {len(skipped) - len(shown)} more")


def render_report(console: Console, report: Report, verbose: bool = False) -> None:
    """Render a complete report: findings, skipped files and summary."""
    findings = report.all_findings()
    if findings:
        render_findings(console, findings, report.metadata.root_path)
    render_skipped(console, report, verbose=verbose)
    render_summary(console, report)


def render_flush(console: Console, result: FlushResult, root: Path | str | None = None) -> None:
    """Render the finding changes of one watch-mode flush."""
    for delta in result.non_empty_deltas():
        path = escape(display_path(delta.path, root))
        for finding in delta.added:
            console.print(
                f"[bold red]+[/bold red] {path}:{finding.line}:{finding.column} "
                f"{escape(finding.rule_label)} [magenta]{escape(finding.match)}[/magenta]"
            )
        for finding in delta.removed:
            console.print(
                f"[bold green]-[/bold green] {path}:{finding.line}:{finding.column} "
                f"{escape(finding.rule_label)}"
            )


def render_rules(console: Console, rule_set: RuleSet) -> None:
    """Render the effective rule set in evaluation order."""
    table = Table(show_header=True, header_style="bold", expand=False)
    table.add_column("ID", style="cyan")
    table.add_column("Label")
    table.add_column("Severity")
    table.add_column("Min Entropy", justify="right")
    table.add_column("Pattern", style="dim")

    for rule in rule_set:
        table.add_row(
            rule.rule_id,
            escape(rule.label),
            severity_text(rule.severity),
            f"{rule.min_entropy:.1f}" if rule.min_entropy is not None else "-",
            escape(rule.pattern),
        )

    console.print(table)
