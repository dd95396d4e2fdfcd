"""Watch commands for the respawn watcher daemon.

Provides commands for running the watcher continuously or for a single tick.
"""

import asyncio
import contextlib
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from bosswatch.cli.utils import (
    build_runtime,
    display_error,
    display_success,
    display_warning,
    handle_errors,
    load_config,
    logger,
)
from bosswatch.models.config import AppConfig
from bosswatch.observability.logging import configure_logging
from bosswatch.utils.time_utils import format_duration, to_local

# Create watch sub-app
watch_app = typer.Typer(help="Run the respawn watcher")


@watch_app.command(name="start")
def watch_start(
    config_path: Path = typer.Option(
        "config/bosswatch.yaml",
        "--config",
        "-c",
        help="Path to bosswatch config YAML",
    ),
    health_port: Optional[int] = typer.Option(
        None, "--health-port", "-p", help="Override the health server port"
    ),
    enable_health: bool = typer.Option(
        True, "--health/--no-health", help="Serve health and metrics endpoints"
    ),
):
    """Start the watcher daemon with health server.

    Ticks every configured interval (measured from the end of the previous
    tick) until interrupted. Press Ctrl+C to stop gracefully.

    Examples:
        # Run with config defaults
        python -m bosswatch.cli watch start

        # Custom health port
        python -m bosswatch.cli watch start --health-port 9000
    """
    config = load_config(config_path)
    try:
        asyncio.run(
            _run_watcher(
                config_path=config_path,
                health_port=health_port,
                enable_health=enable_health,
                config=config,
            )
        )
    except KeyboardInterrupt:
        display_warning("\nWatcher stopped.")
    except Exception as e:
        logger.exception("watcher_failed")
        typer.secho(f"Watcher failed: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


async def _run_watcher(
    config_path: Path,
    health_port: Optional[int],
    enable_health: bool,
    config: AppConfig,
):
    """Run the watcher scheduler and, optionally, the health server."""
    from bosswatch import __version__
    from bosswatch.health import (
        HealthChecker,
        create_health_app,
        run_health_server_async,
        set_health_checker,
    )
    from bosswatch.scheduling import RespawnWatchJob, WatchScheduler

    configure_logging(
        level=config.logging.level,
        json_output=config.logging.json_output,
    )
    runtime = build_runtime(config)
    interval = config.watcher.tick_interval_seconds
    port = health_port or config.health.port
    serve_health = enable_health and config.health.enabled

    typer.secho("Starting BossWatch daemon", fg=typer.colors.CYAN, bold=True)
    typer.echo(f"  Config: {config_path}")
    typer.echo(f"  State file: {config.storage.state_path}")
    typer.echo(f"  Tick interval: {interval}s")
    typer.echo(
        "  Thresholds: "
        + ", ".join(format_duration(m) for m in config.watcher.thresholds_minutes)
    )
    if serve_health:
        typer.echo(f"  Health endpoint: http://localhost:{port}/health")
        typer.echo(f"  Metrics endpoint: http://localhost:{port}/metrics")
    if not runtime.notifier.is_configured:
        display_warning("  Discord webhook not configured; alerts will fail.")
    typer.echo("\nPress Ctrl+C to stop.\n")

    scheduler = WatchScheduler()
    scheduler.add_fixed_delay_job(
        RespawnWatchJob(runtime.watcher),
        job_id="respawn_watch",
        seconds=interval,
    )

    health_task = None
    if serve_health:
        set_health_checker(
            HealthChecker(
                state_path=Path(config.storage.state_path),
                discord_config=config.discord,
                watcher=runtime.watcher,
                tick_interval_seconds=interval,
            )
        )
        app = create_health_app(
            version=__version__,
            tracker=runtime.watcher.tracker,
            notifier=runtime.notifier,
        )
        health_task = asyncio.create_task(
            run_health_server_async(
                app, host=config.health.host, port=port, log_level="warning"
            )
        )

    try:
        await scheduler.start()
    finally:
        if health_task is not None:
            health_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await health_task


@watch_app.command(name="tick")
@handle_errors
def watch_tick(
    config_path: Path = typer.Option(
        "config/bosswatch.yaml",
        "--config",
        "-c",
        help="Path to bosswatch config YAML",
    ),
    at: Optional[datetime] = typer.Option(
        None,
        "--at",
        help="Evaluate as of this UTC instant instead of now",
    ),
):
    """Run a single watcher tick and report what it did.

    Dedup state lives in memory, so a one-off tick sends every alert that
    is due at the evaluated instant.
    """
    config = load_config(config_path)
    runtime = build_runtime(config)

    result = asyncio.run(runtime.watcher.tick(at))

    if result.aborted:
        display_error(f"Tick aborted: {result.error}")
        raise typer.Exit(code=1)

    local = to_local(result.started_at, config.digest.timezone)
    display_success(f"Tick at {local.strftime('%Y-%m-%d %H:%M:%S %Z')}")
    typer.echo(f"  Bosses evaluated: {result.bosses_evaluated}")
    if result.bosses_skipped:
        display_warning(f"  Bosses skipped (invalid respawn period): {result.bosses_skipped}")
    typer.echo(f"  Alerts sent: {len(result.alerts_sent)}")
    for alert in result.alerts_sent:
        typer.echo(
            f"    - {alert.boss_name}: {format_duration(alert.threshold_minutes)}"
        )
    if result.alerts_failed:
        display_warning(f"  Alerts failed: {result.alerts_failed}")
    if result.digest_sent:
        typer.echo("  Points digest sent")
