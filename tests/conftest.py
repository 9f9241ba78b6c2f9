import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog():
    # the CLI binds structlog to CliRunner's stderr, which is closed afterwards
    yield
    structlog.reset_defaults()
