"""bridgepool ingest command - run one ingestion."""

import json
from contextlib import nullcontext
from pathlib import Path
from typing import Any

import click

from bridgepool.config.loader import load_config
from bridgepool.core.errors import BridgePoolError
from bridgepool.core.logging import configure_logging, get_log_file
from bridgepool.core.progress import get_console, make_summary_table, pluralize, status, task
from bridgepool.pipeline import run_ingest


def _section(**values: Any) -> dict[str, Any]:
    """Drop options that were not given on the command line."""
    return {key: value for key, value in values.items() if value is not None}


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML config file (default: ./bridgepool.yaml when present)",
)
@click.option("--base-url", help="CollecTor base URL")
@click.option("--dirs", help="Comma-separated directories to collect, e.g. recent/bridge-pool-assignments")
@click.option(
    "--min-last-modified",
    type=click.IntRange(min=0),
    help="Ignore files last modified before this instant (epoch milliseconds)",
)
@click.option("--db-url", help="SQLAlchemy database URL")
@click.option("--clear", is_flag=True, help="Empty both tables before inserting")
@click.option("--max-concurrency", type=click.IntRange(min=1), help="Max simultaneous downloads")
@click.option("--json", "as_json", is_flag=True, help="Output the run summary as JSON")
@click.pass_context
def ingest_command(
    ctx: click.Context,
    config_path: Path | None,
    base_url: str | None,
    dirs: str | None,
    min_last_modified: int | None,
    db_url: str | None,
    clear: bool,
    max_concurrency: int | None,
    as_json: bool,
) -> None:
    """Fetch recent bridge pool assignments and store them in the database.

    Options override BRIDGEPOOL__* environment variables, which override the
    YAML config file.
    """
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))

    try:
        config = load_config(
            config_path,
            collector=_section(
                base_url=base_url,
                directories=dirs,
                min_last_modified_millis=min_last_modified,
            ),
            fetch=_section(max_concurrency=max_concurrency),
            database=_section(url=db_url, clear=clear or None),
        )
        if verbose:
            config.logging.level = "DEBUG"
        configure_logging(config.logging)

        summary = run_ingest(config, stage=nullcontext if as_json else task)
    except BridgePoolError as e:
        if as_json:
            click.echo(json.dumps(e.to_dict()))
            ctx.exit(1)
        message = str(e)
        if log_file := get_log_file():
            message += f"\nDetails in log file: {log_file}"
        raise click.ClickException(message) from e

    if as_json:
        click.echo(json.dumps(summary.to_dict()))
        return

    counts = {
        "Files discovered": summary.files_discovered,
        "Files fetched": summary.files_fetched,
        "Fetch errors": summary.fetch_errors,
        "Files parsed": summary.files_parsed,
        "Files exported": summary.files_exported,
        "Entries exported": summary.entries_exported,
    }
    get_console().print(make_summary_table(counts, title="Ingest summary"))
    if summary.fetch_errors:
        status(
            f"Skipped {pluralize(summary.fetch_errors, 'snapshot')} that could not be fetched",
            style="warning",
        )
