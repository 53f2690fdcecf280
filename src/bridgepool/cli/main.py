"""Bridgepool CLI - bridgepool command."""

import click

from bridgepool.cli.ingest import ingest_command


@click.group()
@click.version_option(version="0.1.0", prog_name="bridgepool")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Bridgepool - ingest Tor bridge pool assignments from CollecTor."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


cli.add_command(ingest_command, name="ingest")


if __name__ == "__main__":
    cli()
