"""
Request-scoped dependencies.

Every request gets its own TestRail client so concurrent syncs never share
connection state or cached hierarchy.
"""

from typing import AsyncIterator

from testrail_sync.core.config import settings
from testrail_sync.services.testrail_client import TestRailClient


async def get_testrail_client() -> AsyncIterator[TestRailClient]:
    """Yield a client built from settings and close it after the request."""
    client = TestRailClient.from_settings(settings)
    try:
        yield client
    finally:
        await client.close()


def get_settings():
    """Application settings; overridable in tests."""
    return settings
