"""Health command for health server management.

Provides commands for starting the health server.
"""

from pathlib import Path
from typing import Optional

import typer

from bosswatch.cli.utils import build_runtime, handle_errors, display_info, load_config


@handle_errors
def health_command(
    config_path: Path = typer.Option(
        "config/bosswatch.yaml",
        "--config",
        "-c",
        help="Path to bosswatch config YAML",
    ),
    host: Optional[str] = typer.Option(
        None, "--host", "-h", help="Health server host"
    ),
    port: Optional[int] = typer.Option(
        None, "--port", "-p", help="Health server port"
    ),
):
    """Start standalone health server.

    Starts the health server without the watcher.
    Useful for checking configuration and state before starting the daemon.
    """
    from bosswatch import __version__
    from bosswatch.health import (
        HealthChecker,
        create_health_app,
        run_health_server,
        set_health_checker,
    )

    config = load_config(config_path)
    runtime = build_runtime(config)
    host = host or config.health.host
    port = port or config.health.port

    set_health_checker(
        HealthChecker(
            state_path=Path(config.storage.state_path),
            discord_config=config.discord,
        )
    )
    app = create_health_app(version=__version__, notifier=runtime.notifier)

    display_info(f"Starting health server at http://{host}:{port}")
    run_health_server(app, host=host, port=port)
