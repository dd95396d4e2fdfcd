"""BossWatch CLI Package.

Provides the command-line interface for the boss respawn watcher.

Usage:
    python -m bosswatch.cli watch start --config config/bosswatch.yaml
    python -m bosswatch.cli watch tick
    python -m bosswatch.cli validate config/bosswatch.yaml
    python -m bosswatch.cli points --top 10
    python -m bosswatch.cli notify "Guild war at 21:00"
    python -m bosswatch.cli health
"""

import typer

from bosswatch.cli.watch import watch_app
from bosswatch.cli.validate import validate_command
from bosswatch.cli.points import points_command
from bosswatch.cli.notify import notify_command
from bosswatch.cli.health import health_command

# Create main app
app = typer.Typer(help="BossWatch: boss respawn notifications for Discord")

# Register individual commands
app.command(name="validate")(validate_command)
app.command(name="points")(points_command)
app.command(name="notify")(notify_command)
app.command(name="health")(health_command)

# Register sub-applications
app.add_typer(watch_app, name="watch")

__all__ = [
    "app",
    "watch_app",
    "validate_command",
    "points_command",
    "notify_command",
    "health_command",
]
