"""Validate command for configuration and guild state files.

Validates configuration file syntax and semantics, then checks that the
configured guild state file loads.
"""

from pathlib import Path

import typer

from bosswatch.services.config_manager import ConfigManager
from bosswatch.services.guild_store import JsonGuildStore
from bosswatch.cli.utils import (
    handle_errors,
    display_success,
    display_error,
    display_warning,
)
from bosswatch.utils.exceptions import RepositoryError


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
    check_state: bool = typer.Option(
        True, "--state/--no-state", help="Also load the guild state file"
    ),
):
    """Validate configuration file syntax and semantics."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        config = manager.load_config()
        display_success("Configuration is valid! ✅")
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    if config.discord.enabled and config.discord.webhook_url is None:
        display_warning("Discord webhook URL is not configured")

    if not check_state:
        return

    try:
        state = JsonGuildStore(manager.get_state_path()).load()
    except RepositoryError as e:
        display_error(f"Guild state invalid: {e}")
        raise typer.Exit(code=1)

    invalid = [b.name for b in state.bosses if not b.has_valid_period]
    display_success(
        f"Guild state is valid: {len(state.bosses)} bosses, "
        f"{len(state.history)} history records, {len(state.members)} members"
    )
    if invalid:
        display_warning(
            "Bosses without a positive respawn period (never alerted): "
            + ", ".join(invalid)
        )
