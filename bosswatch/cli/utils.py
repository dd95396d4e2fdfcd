"""Shared CLI utilities.

Provides common functionality for all CLI commands.
"""

import functools
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar

import structlog
import typer

from bosswatch.models.config import AppConfig
from bosswatch.observability.logging import configure_logging
from bosswatch.services.config_manager import ConfigManager, ConfigValidationError
from bosswatch.services.discord_service import DiscordNotificationService
from bosswatch.services.guild_store import JsonGuildStore
from bosswatch.services.respawn_watcher import RespawnWatcher

# Configure structured logging
configure_logging()
logger = structlog.get_logger()

# Type variable for decorator
F = TypeVar("F", bound=Callable)


@dataclass
class WatchRuntime:
    """Collaborators wired together from one configuration."""

    config: AppConfig
    store: JsonGuildStore
    notifier: DiscordNotificationService
    watcher: RespawnWatcher


def load_config(config_path: Path) -> AppConfig:
    """Load and validate configuration.

    Args:
        config_path: Path to configuration file.

    Returns:
        Validated AppConfig.

    Raises:
        typer.Exit: If configuration is invalid.
    """
    config_manager = ConfigManager(config_path=str(config_path))
    try:
        return config_manager.load_config()
    except (FileNotFoundError, ConfigValidationError) as e:
        typer.secho(f"Configuration Error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def build_runtime(config: AppConfig) -> WatchRuntime:
    """Wire the guild store, Discord service and watcher from config."""
    store = JsonGuildStore(Path(config.storage.state_path))
    notifier = DiscordNotificationService(
        config.discord, digest_top_n=config.digest.top_n
    )
    watcher = RespawnWatcher(
        repository=store,
        sender=notifier,
        settings=config.watcher,
        digest=config.digest,
    )
    return WatchRuntime(
        config=config,
        store=store,
        notifier=notifier,
        watcher=watcher,
    )


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Catches exceptions and displays user-friendly error messages.

    Args:
        func: Function to wrap.

    Returns:
        Wrapped function with error handling.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            logger.exception("command_failed")
            typer.secho(f"Error: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    typer.secho(message, fg=typer.colors.GREEN)


def display_warning(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW)


def display_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)


def display_info(message: str) -> None:
    typer.secho(message, fg=typer.colors.CYAN)
