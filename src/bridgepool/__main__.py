"""Entry point for ``python -m bridgepool``."""

from bridgepool.cli.main import cli

if __name__ == "__main__":
    cli()
