from datetime import datetime, timezone
from pathlib import Path

import pytest

from tcu_api.credential import UsernameToken
from tcu_api.monitoring import initialize_monitor
from tcu_api.request_builder import RequestBuilder

FIXTURES = Path(__file__).resolve().parent / "fixtures"

FIXED_NOW = datetime(2025, 1, 9, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def fixture_path():
    """Return the path of a file under tests/fixtures."""
    return lambda name: FIXTURES / name


@pytest.fixture
def load_fixture():
    """Return the text of a file under tests/fixtures."""
    return lambda name: (FIXTURES / name).read_text(encoding="utf-8")


@pytest.fixture
def credential():
    return UsernameToken.create("jdoe", "abcdefghij0123", created_at=FIXED_NOW)


@pytest.fixture
def builder():
    return RequestBuilder(clock=lambda: FIXED_NOW)


@pytest.fixture
def fresh_monitor():
    """Replace the process-wide monitor with an empty one."""
    return initialize_monitor()
