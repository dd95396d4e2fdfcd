"""Guild state store: the watcher's read-only persistence collaborator.

Provides the boss list, defeat history and member roster. The JSON-backed
store re-reads its file on every call so edits made by the guild's web
app are picked up on the next tick.
"""

import json
from pathlib import Path
from typing import List, Optional, Protocol
import structlog
from pydantic import ValidationError

from bosswatch.models.boss import BossDefeat, GuildState, Member, TrackedBoss
from bosswatch.utils.exceptions import RepositoryError

logger = structlog.get_logger()

# Default state file location
DEFAULT_STATE_PATH = Path("data/guild_state.json")


class BossRepository(Protocol):
    """Read-only access to guild state."""

    def list_bosses(self) -> List[TrackedBoss]: ...

    def list_history(self) -> List[BossDefeat]: ...

    def list_members(self) -> List[Member]: ...


class JsonGuildStore:
    """Guild state backed by a JSON file.

    The file holds a single object with ``bosses``, ``history`` and
    ``members`` arrays. Every read validates the whole document; any
    failure surfaces as RepositoryError.
    """

    def __init__(self, state_path: Optional[Path] = None):
        """Initialize the store.

        Args:
            state_path: Path to the guild state JSON file.
        """
        self.state_path = Path(state_path) if state_path else DEFAULT_STATE_PATH

        logger.info("guild_store_initialized", path=str(self.state_path))

    def load(self) -> GuildState:
        """Load and validate the state file.

        Returns:
            Current guild state.

        Raises:
            RepositoryError: If the file is missing, unreadable or invalid.
        """
        if not self.state_path.exists():
            raise RepositoryError(f"Guild state file not found: {self.state_path}")

        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(
                "guild_state_parse_error",
                path=str(self.state_path),
                error=str(e),
            )
            raise RepositoryError(f"Guild state is not valid JSON: {e}") from e
        except OSError as e:
            raise RepositoryError(f"Failed to read guild state: {e}") from e

        try:
            state = GuildState.model_validate(data)
        except ValidationError as e:
            logger.error(
                "guild_state_invalid",
                path=str(self.state_path),
                errors=e.error_count(),
            )
            raise RepositoryError(f"Guild state failed validation: {e}") from e

        logger.debug(
            "guild_state_loaded",
            bosses=len(state.bosses),
            history=len(state.history),
            members=len(state.members),
        )
        return state

    def list_bosses(self) -> List[TrackedBoss]:
        return self.load().bosses

    def list_history(self) -> List[BossDefeat]:
        return self.load().history

    def list_members(self) -> List[Member]:
        return self.load().members


class InMemoryGuildStore:
    """Guild state held in memory.

    Used by tests and by callers that already hold a GuildState.
    """

    def __init__(self, state: Optional[GuildState] = None):
        self.state = state or GuildState()

    def list_bosses(self) -> List[TrackedBoss]:
        return list(self.state.bosses)

    def list_history(self) -> List[BossDefeat]:
        return list(self.state.history)

    def list_members(self) -> List[Member]:
        return list(self.state.members)
