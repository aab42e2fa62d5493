import logging
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from deltacrawl.exceptions import ConfigurationError

app = typer.Typer(name="deltacrawl", help="Incremental file crawler feeding a Solr index")
console = Console()

DEFAULT_CONFIG = Path("config.properties")

# Exit status for fatal configuration errors
EXIT_CONFIG = 2


def _setup_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def _load(config: Path | None, **overrides):
    from deltacrawl.config import load_settings

    if config is None and DEFAULT_CONFIG.exists():
        config = DEFAULT_CONFIG

    try:
        return load_settings(config, **overrides)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_CONFIG)


@app.command()
def crawl(
    config: Path | None = typer.Option(None, "--config", "-c", help="config.properties or YAML file"),
    delta_file: Path | None = typer.Option(None, help="Override the delta log location"),
):
    """Push new and changed files under the configured paths to Solr."""
    from deltacrawl.pipeline.orchestrator import Orchestrator
    from deltacrawl.sink.solr import SolrSink

    _setup_logging()
    overrides = {"delta_file": delta_file} if delta_file else {}
    settings = _load(config, **overrides)
    _setup_logging(settings.debug)

    with SolrSink.from_settings(settings) as sink:
        report = Orchestrator(settings, sink).run()

    table = Table(title="Crawl summary")
    table.add_column("Root", style="cyan")
    table.add_column("Pushed", justify="right", style="green")
    table.add_column("Unchanged", justify="right")
    table.add_column("Filtered", justify="right")
    table.add_column("Errors", justify="right", style="red")

    for r in report.results:
        table.add_row(
            str(r.root),
            str(r.pushed),
            str(r.skipped),
            str(r.filtered),
            str(r.failed + r.sink_errors),
        )
    for failure in report.failed_roots:
        table.add_row(failure.root, "-", "-", "-", failure.error)
    console.print(table)

    if not report.saved:
        console.print(f"[yellow]Delta log could not be saved to {settings.delta_file}[/yellow]")
    console.print("[bold green]Done indexing the given paths![/bold green]")


@app.command()
def delta(
    config: Path | None = typer.Option(None, "--config", "-c", help="config.properties or YAML file"),
    delta_file: Path | None = typer.Option(None, help="Delta log to show"),
    limit: int = typer.Option(50, help="Number of records to list"),
):
    """Show the records in a delta log."""
    from deltacrawl.config import Settings
    from deltacrawl.storage.delta import DeltaStore

    if delta_file is None:
        if config is not None or DEFAULT_CONFIG.exists():
            delta_file = _load(config).delta_file
        else:
            delta_file = Settings.model_fields["delta_file"].default

    log = DeltaStore(delta_file).load()
    if not len(log):
        console.print(f"[yellow]No records in {delta_file}[/yellow]")
        raise typer.Exit(0)

    records = sorted(log, key=lambda r: r.last_modified, reverse=True)
    table = Table(title=f"{delta_file} ({len(log)} records)")
    table.add_column("Path", width=80)
    table.add_column("Last modified", style="cyan")

    for record in records[:limit]:
        stamp = datetime.fromtimestamp(record.last_modified / 1000)
        table.add_row(record.path, stamp.isoformat(sep=" ", timespec="seconds"))
    console.print(table)


@app.command()
def check(
    config: Path | None = typer.Option(None, "--config", "-c", help="config.properties or YAML file"),
):
    """Validate the configuration and print the effective settings."""
    _setup_logging()
    settings = _load(config)

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("paths", "\n".join(settings.paths))
    table.add_row("solr_uri", settings.solr_uri)
    table.add_row("content_type", settings.content_type)
    table.add_row("extensions", ", ".join(settings.extensions))
    table.add_row("max_file_size", f"{settings.max_file_size} bytes")
    table.add_row(
        "paths_to_replace",
        "\n".join(f"{old} -> {new}" for old, new in settings.paths_to_replace) or "-",
    )
    table.add_row("delta_file", str(settings.delta_file))
    table.add_row("debug", str(settings.debug))
    console.print(table)
    console.print("[bold green]Configuration OK[/bold green]")


if __name__ == "__main__":
    app()
