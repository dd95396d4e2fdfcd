"""Notify command for manual Discord announcements."""

import asyncio
from pathlib import Path

import typer

from bosswatch.cli.utils import (
    build_runtime,
    display_error,
    display_success,
    handle_errors,
    load_config,
)


@handle_errors
def notify_command(
    message: str = typer.Argument(..., help="Announcement text"),
    config_path: Path = typer.Option(
        "config/bosswatch.yaml",
        "--config",
        "-c",
        help="Path to bosswatch config YAML",
    ),
):
    """Send a manual notification to the guild's Discord channel."""
    config = load_config(config_path)
    runtime = build_runtime(config)
    runtime.notifier.ensure_configured()

    result = asyncio.run(runtime.notifier.send_manual(message))
    if not result.success:
        display_error(f"Notification failed: {result.error}")
        raise typer.Exit(code=1)

    display_success("Notification sent successfully")
