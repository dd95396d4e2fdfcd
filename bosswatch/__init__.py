"""BossWatch: boss respawn notifications for guild Discord servers."""

__version__ = "1.0.0"
