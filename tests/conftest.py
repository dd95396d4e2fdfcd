"""Shared pytest fixtures."""

import pytest
import structlog


@pytest.fixture(autouse=True)
def restore_structlog_config():
    """Restore the structlog configuration a test started with.

    configure_logging() binds the PrintLogger to whatever sys.stderr is at
    call time; under capsys that stream is closed after the test.
    """
    saved = structlog.get_config()
    yield
    structlog.configure(**saved)
