"""Points command for attendance standings.

Shows the same standings the scheduled digest posts to Discord.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from bosswatch.cli.utils import (
    build_runtime,
    display_error,
    display_info,
    display_success,
    handle_errors,
    load_config,
)
from bosswatch.services.points_service import compute_member_points
from bosswatch.utils.time_utils import local_to_utc


@handle_errors
def points_command(
    config_path: Path = typer.Option(
        "config/bosswatch.yaml",
        "--config",
        "-c",
        help="Path to bosswatch config YAML",
    ),
    top: int = typer.Option(
        0, "--top", "-n", min=0, help="Show only the top N members (0 = all)"
    ),
    send: bool = typer.Option(
        False, "--send", help="Post the standings to Discord as a digest"
    ),
    since: Optional[datetime] = typer.Option(
        None,
        "--since",
        help="Only count defeats at or after this guild-local time",
    ),
):
    """Show attendance points per member."""
    config = load_config(config_path)
    runtime = build_runtime(config)

    points = compute_member_points(
        runtime.store.list_history(),
        runtime.store.list_members(),
        since=local_to_utc(since, config.digest.timezone) if since else None,
    )

    if not points:
        display_info("No attendance recorded yet.")
    else:
        shown = points[:top] if top else points
        width = max(len(p.name) for p in shown)
        typer.secho("Attendance Points", bold=True)
        for rank, entry in enumerate(shown, start=1):
            typer.echo(f"  {rank:>3}. {entry.name:<{width}}  {entry.points}")
        if len(shown) < len(points):
            typer.echo(f"  ...and {len(points) - len(shown)} more members")

    if send:
        result = asyncio.run(runtime.notifier.send_digest(points))
        if not result.success:
            display_error(f"Digest failed: {result.error}")
            raise typer.Exit(code=1)
        display_success("Digest sent to Discord")
