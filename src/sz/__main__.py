"""Entry point for ``python -m sz``."""

from sz.app.cli import cli

if __name__ == "__main__":
    cli(prog_name="sz")
