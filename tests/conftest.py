import pytest
from typer.testing import CliRunner

from zestislam.infrastructure.config import settings
from zestislam.infrastructure.credentials.credential_pool import CredentialPool
from zestislam.infrastructure.resilience.resilient_invoker import ResilientInvoker


class RecordingSleep:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)

    @property
    def total(self):
        return sum(self.delays)


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_settings():
    """Keeps test overrides from leaking between tests."""
    settings.clear_test_config()
    yield
    settings.clear_test_config()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def make_pool():
    """Builds a CredentialPool that reads only the given raw configuration."""
    def _make(raw, provider="gemini"):
        return CredentialPool(provider=provider, config_reader=lambda: {"API_KEY": raw} if isinstance(raw, str) else raw)
    return _make


@pytest.fixture
def pool(make_pool):
    return make_pool("abc, def ,ghi")


@pytest.fixture
def events():
    return []


@pytest.fixture
def invoker(pool, fake_sleep, events):
    return ResilientInvoker(credential_pool=pool, sleep=fake_sleep, event_listener=events.append)


@pytest.fixture
def public_invoker(fake_sleep):
    return ResilientInvoker(credential_pool=None, sleep=fake_sleep)
