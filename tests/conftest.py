import pytest
import pytest_asyncio

from testrail_sync.services.testrail_client import TestRailClient as Client
from testrail_sync.utils.retry import RateLimitPolicy
from tests.fakes import FakeTestRail, RecordingSleep


@pytest.fixture
def fake_testrail() -> FakeTestRail:
    return FakeTestRail()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_policy(recording_sleep) -> RateLimitPolicy:
    """Default 60 second interval, but nothing actually waits."""
    return RateLimitPolicy(interval=60.0, sleep=recording_sleep)


@pytest_asyncio.fixture
async def client(fake_testrail, retry_policy):
    testrail = Client(
        FakeTestRail.HOST,
        FakeTestRail.USER,
        FakeTestRail.PASSWORD,
        retry_policy=retry_policy,
        transport=fake_testrail.transport,
    )
    yield testrail
    await testrail.close()
