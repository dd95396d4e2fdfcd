"""Custom exceptions for the boss respawn watcher

This module defines the exception hierarchy for the notification core:
- Base exception for all watcher errors
- Specific exceptions for the persistence and notification collaborators

All exceptions inherit from BossWatchError to allow catching every
watcher-related error in a single except block when needed.
"""


class BossWatchError(Exception):
    """Base exception for all watcher errors

    Use this to catch any error raised by the notification core:
    ```python
    try:
        bosses = store.list_bosses()
    except BossWatchError as e:
        logger.error("tick_aborted", error=str(e))
    ```
    """

    pass


class RepositoryError(BossWatchError):
    """Guild state could not be read

    Raised when:
    - The state file does not exist
    - The state file is not valid JSON
    - The state file does not match the expected schema

    The watcher aborts the current tick and retries on the next one.
    """

    pass


class NotificationError(BossWatchError):
    """Notification delivery failed

    Raised when:
    - A notification sender is used without a webhook configured
    - A caller asks for a strict send and the webhook rejected it
    """

    pass
