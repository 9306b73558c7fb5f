"""
Connection Check
Validates TestRail connection settings before a sync is attempted.
"""

import logging
from typing import Any

from testrail_sync.models.sync import CheckLevel, CheckMessage, ConnectionCheck
from testrail_sync.services.testrail_client import TestRailClient
from testrail_sync.utils.testrail_helpers import has_http_scheme, is_valid_extra_parameters

logger = logging.getLogger(__name__)


async def check_connection(client: TestRailClient, settings: Any) -> ConnectionCheck:
    """
    Check host, credentials and extra parameters.

    Network checks stop at the first failing step: no reachability probe
    without a valid host, no login without reachability.

    Args:
        client: Client built from the same settings
        settings: Application settings

    Returns:
        ConnectionCheck listing every problem found
    """
    check = ConnectionCheck(ok=False)
    messages = check.messages
    host = settings.testrail_host

    if not host:
        messages.append(CheckMessage(
            field="testrail_host", level=CheckLevel.WARNING,
            message="Please add your TestRail host URI."))
    elif not has_http_scheme(host):
        messages.append(CheckMessage(
            field="testrail_host", level=CheckLevel.ERROR,
            message="Host must be a valid URL. Are you missing the protocol?"))
    else:
        check.reachable = await client.server_reachable()
        if not check.reachable:
            messages.append(CheckMessage(
                field="testrail_host", level=CheckLevel.ERROR,
                message="Host is not reachable."))

    if not settings.testrail_user or not settings.testrail_password:
        messages.append(CheckMessage(
            field="testrail_user", level=CheckLevel.WARNING,
            message="Please add your user's email address and password or API key."))
    elif check.reachable:
        check.authenticated = await client.authentication_works()
        if not check.authenticated:
            messages.append(CheckMessage(
                field="testrail_user", level=CheckLevel.ERROR,
                message="Invalid user/password combination."))

    if not is_valid_extra_parameters(settings.extra_parameters):
        messages.append(CheckMessage(
            field="extra_parameters", level=CheckLevel.ERROR,
            message="Extra Parameters must be either an empty string or a valid JSON object."))

    check.ok = not messages
    if not check.ok:
        logger.warning(f"TestRail configuration has {len(messages)} problem(s)")
    return check
