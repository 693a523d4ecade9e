"""
CLI for passcan.

Provides the command-line interface for one-shot and watch-mode secret scans.

Exit codes: 0 when no secrets were found, 1 when at least one was, 2 on
configuration, rule or watch errors.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from passcan.cli import ui
from passcan.core.config import PasscanConfig, load_config
from passcan.core.errors import PasscanError
from passcan.core.report import Report
from passcan.core.rules import RuleSet, load as load_rules
from passcan.core.watch_config import WatchConfig
from passcan.infrastructure.file_watcher import FileWatcher
from passcan.services import FlushResult, ScanCoordinator, ScanRequest, WatchService

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2

# Initialize Rich Consoles; diagnostics go to stderr so --json stays parseable
console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="passcan",
    help="Scan directory trees for leaked secrets",
    add_completion=False,
)

logger = logging.getLogger(__name__)


def _setup_logging(cfg: PasscanConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, cfg.logging.level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format=cfg.logging.format,
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _load_settings(
    config_path: Optional[Path],
    rules_file: Optional[Path],
    disable: Optional[list[str]],
    verbose: bool,
) -> tuple[PasscanConfig, RuleSet]:
    """Load .env, configuration and the effective rule set, exiting with 2 on errors."""
    load_dotenv()
    try:
        cfg = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        err_console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(EXIT_ERROR)

    _setup_logging(cfg, verbose)

    try:
        rule_set = load_rules(
            rules_file=rules_file or cfg.rules.rules_file,
            disabled_rules=[*cfg.rules.disabled_rules, *(disable or [])],
        )
    except PasscanError as e:
        err_console.print(f"[bold red]Rule error:[/bold red] {e}")
        raise typer.Exit(EXIT_ERROR)

    return cfg, rule_set


def _exit_code(report: Optional[Report]) -> int:
    return EXIT_FINDINGS if report is not None and report.total_findings else EXIT_CLEAN


@app.command()
def scan(
    path: Path = typer.Argument(Path("."), help="Directory to scan"),
    watch: bool = typer.Option(
        False, "--watch", "-w", help="Keep watching and re-scan files as they change"
    ),
    exclude: Optional[list[str]] = typer.Option(
        None, "--exclude", "-e", help="Gitignore-style pattern to skip. Can be specified multiple times."
    ),
    max_size: Optional[int] = typer.Option(
        None, "--max-size", help="Skip files larger than this many bytes"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-j", help="Number of parallel workers"
    ),
    rules_file: Optional[Path] = typer.Option(
        None, "--rules", "-r", help="YAML file with extra rules and overrides"
    ),
    disable: Optional[list[str]] = typer.Option(
        None, "--disable", "-d", help="Rule id to disable. Can be specified multiple times."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml or .json)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    show_secrets: bool = typer.Option(
        False, "--show-secrets", help="Print matched secrets without redaction"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging and full skip list"),
):
    """Scan a directory for secrets."""
    cfg, rule_set = _load_settings(config_path, rules_file, disable, verbose)

    if not path.exists() or not path.is_dir():
        err_console.print(f"[bold red]Error:[/bold red] Not a directory: {path}")
        raise typer.Exit(EXIT_ERROR)

    if show_secrets:
        cfg.scan.redact = False

    request = ScanRequest(
        root=path.resolve(),
        exclude_globs=tuple([*cfg.scan.exclude_patterns, *(exclude or [])]),
        max_file_size=max_size if max_size is not None else cfg.scan.max_file_size,
        watch=watch,
    )

    if watch:
        raise typer.Exit(_watch(request, rule_set, cfg, workers, json_output, verbose))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=True,
        disable=json_output,
    ) as progress:
        task = progress.add_task("Scanning files...", total=None)

        def update_progress(processed: int, file_path: str) -> None:
            progress.update(task, description=f"Scanned {processed} files")

        coordinator = ScanCoordinator(
            rule_set,
            config=cfg.scan,
            max_workers=workers,
            progress_callback=update_progress,
        )
        try:
            report = coordinator.run_full(request)
        except KeyboardInterrupt:
            err_console.print("[yellow]Scan interrupted[/yellow]")
            raise typer.Exit(130)

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        ui.render_report(console, report, verbose=verbose)

    raise typer.Exit(_exit_code(report))


def _watch(
    request: ScanRequest,
    rule_set: RuleSet,
    cfg: PasscanConfig,
    workers: Optional[int],
    json_output: bool,
    verbose: bool,
) -> int:
    """Run a watch session until interrupted; returns the exit code."""
    watch_config = WatchConfig(
        watch_path=request.root,
        debounce_ms=cfg.watch.debounce_ms,
        max_wait_ms=cfg.watch.max_wait_ms,
        queue_size=cfg.watch.queue_size,
        verbose=verbose,
    )
    coordinator = ScanCoordinator(rule_set, config=cfg.scan, max_workers=workers)
    file_watcher = FileWatcher(
        exclude_patterns=request.exclude_globs,
        respect_gitignore=cfg.scan.respect_gitignore,
    )

    def on_flush(result: FlushResult) -> None:
        if json_output:
            for delta in result.non_empty_deltas():
                typer.echo(
                    json.dumps(
                        {
                            "path": delta.path,
                            "added": [f.to_dict() for f in delta.added],
                            "removed": [f.to_dict() for f in delta.removed],
                        }
                    )
                )
        else:
            ui.render_flush(console, result, request.root)

    service = WatchService(
        coordinator,
        file_watcher,
        watch_config,
        request=request,
        on_flush=on_flush,
    )

    try:
        asyncio.run(_watch_session(service, json_output, verbose))
    except KeyboardInterrupt:
        err_console.print("[yellow]Stopped watching[/yellow]")
    except PasscanError as e:
        err_console.print(f"[bold red]Watch error:[/bold red] {e}")
        return EXIT_ERROR

    return _exit_code(service.report)


async def _watch_session(service: WatchService, json_output: bool, verbose: bool) -> None:
    await service.start()
    try:
        report = await service.wait_for_full_scan()
        if json_output:
            typer.echo(json.dumps(report.to_dict()))
        else:
            ui.render_report(console, report, verbose=verbose)
            err_console.print(
                f"[bold blue]Watching[/bold blue] {service.config.watch_path} "
                "[dim](Ctrl+C to stop)[/dim]"
            )
        await service.wait()
    finally:
        await service.stop()
        logger.info("Watch session ended", extra={"stats": service.get_stats().to_dict()})


@app.command()
def rules(
    rules_file: Optional[Path] = typer.Option(
        None, "--rules", "-r", help="YAML file with extra rules and overrides"
    ),
    disable: Optional[list[str]] = typer.Option(
        None, "--disable", "-d", help="Rule id to disable. Can be specified multiple times."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (.yaml or .json)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the rules as JSON"),
):
    """List the effective rule set."""
    _, rule_set = _load_settings(config_path, rules_file, disable, verbose=False)

    if json_output:
        typer.echo(json.dumps([rule.to_dict() for rule in rule_set], indent=2))
    else:
        ui.render_rules(console, rule_set)


if __name__ == "__main__":
    app()
