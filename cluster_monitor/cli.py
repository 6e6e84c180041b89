"""Main CLI entry point for the cluster monitor."""

import typer
from rich.console import Console

from cluster_monitor.config import DEFAULT_REFRESH_INTERVAL, DEFAULT_REQUEST_TIMEOUT, DEFAULT_URL
from cluster_monitor.exceptions import ConfigurationError
from cluster_monitor.logging_config import DEBUG_LOG_FILE, get_logger, setup_logging

app = typer.Typer(
    name="cluster-monitor",
    help="Terminal dashboard for cluster topology monitoring",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Print the version and exit."""
    if value:
        from cluster_monitor import __version__

        typer.echo(f"cluster-monitor {__version__}")
        raise typer.Exit()


@app.command()
def main(
    url: str = typer.Option(
        DEFAULT_URL, "--url", "-u", envvar="CLUSTER_MONITOR_URL", help="Cluster HTTP API URL"
    ),
    refresh: int = typer.Option(
        DEFAULT_REFRESH_INTERVAL,
        "--refresh",
        "-r",
        envvar="CLUSTER_MONITOR_REFRESH",
        help="Auto-refresh interval in seconds, 0 to disable",
    ),
    timeout: float = typer.Option(
        DEFAULT_REQUEST_TIMEOUT, "--timeout", help="Request timeout in seconds"
    ),
    debug: bool = typer.Option(
        False, "--debug", "-d", help=f"Log API requests and responses to {DEBUG_LOG_FILE}"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version information",
    ),
) -> None:
    """
    Monitor cluster tiers, replicasets and instances.

    Polls the cluster management API and shows live topology with tree and
    flat views, sorting, filtering and remembered login sessions.
    """
    from cluster_monitor.config import MonitorConfig

    try:
        config = MonitorConfig.build(
            url=url, refresh_interval=refresh, request_timeout=timeout, debug=debug
        )
    except ConfigurationError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        if e.details:
            console.print(f"  {e.details}")
        raise typer.Exit(1)

    setup_logging(debug=config.debug)
    logger.info(f"Starting dashboard for {config.url} (refresh {config.refresh_interval}s)")

    from cluster_monitor.tui import ClusterTUI

    ClusterTUI(config).run()


if __name__ == "__main__":
    app()
