import logging
import sys
from typing import Optional

import typer

from easy_openyurt import __version__
from easy_openyurt.commands import kube, system, yurt
from easy_openyurt.logs import setup_command_logs, setup_logging

app = typer.Typer(help="Deploy Kubernetes and OpenYurt: <system|kube|yurt> <master|worker> <init|join|expand>")

# Add all command groups
app.add_typer(system.app, name="system")
app.add_typer(kube.app, name="kube")
app.add_typer(yurt.app, name="yurt")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"easy-openyurt {__version__}")
        raise typer.Exit()


# Global options callback
@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
    log_dir: Optional[str] = typer.Option(None, "--log-dir", help="Directory for the command and error logs"),
    version: bool = typer.Option(False, "--version", callback=_print_version, is_eager=True, help="Show version"),
):
    """easy-openyurt - Kubernetes + OpenYurt node provisioning."""
    setup_logging(debug)
    directory = setup_command_logs(log_dir)
    logging.debug(f"Command logs are written to {directory}")


if __name__ == "__main__":
    try:
        app()
    except Exception as e:
        logging.error(f"Error: {e}")
        sys.exit(1)
