from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
import logging

from testrail_sync.core.dependencies import get_settings, get_testrail_client
from testrail_sync.models.sync import SyncReport, SyncRequest
from testrail_sync.services.sync_service import ResultSyncService
from testrail_sync.services.testrail_client import TestRailClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sync"])


@router.post(
    "/sync",
    response_model=SyncReport,
    summary="Sync test results",
    description="Map a report tree onto TestRail sections and cases and upload its results"
)
async def sync_results(
    body: SyncRequest,
    client: TestRailClient = Depends(get_testrail_client),
    app_settings=Depends(get_settings),
):
    """
    Push one report tree to TestRail.

    Request fields override the configured defaults. The response reports
    success only if TestRail accepted the uploaded results.
    """
    try:
        options = body.to_options(app_settings)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid sync options: {e}")

    total = sum(suite.count_cases() for suite in body.suites)
    logger.info(f"Syncing {total} report cases to project {options.project}, suite {options.suite}")

    report = await ResultSyncService(client, options).run(body.suites)
    if not report.success:
        logger.warning(f"Sync to project {options.project} did not succeed")
    return report
