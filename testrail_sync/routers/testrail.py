from fastapi import APIRouter, Depends, Path
from typing import List
import logging

from testrail_sync.core.dependencies import get_settings, get_testrail_client
from testrail_sync.models.sync import ConnectionCheck
from testrail_sync.models.testrail import Milestone, Project, Run, Suite
from testrail_sync.services.connection_check import check_connection
from testrail_sync.services.testrail_client import TestRailClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/testrail", tags=["testrail"])


@router.get("/check", response_model=ConnectionCheck)
async def check_configuration(
    client: TestRailClient = Depends(get_testrail_client),
    app_settings=Depends(get_settings),
):
    """Validate host, credentials and extra parameters."""
    return await check_connection(client, app_settings)


@router.get("/projects", response_model=List[Project])
async def list_projects(client: TestRailClient = Depends(get_testrail_client)):
    """List TestRail projects available to the configured user."""
    return await client.list_projects()


@router.get("/projects/{project_id}/suites", response_model=List[Suite])
async def list_suites(
    project_id: int = Path(..., description="TestRail project ID"),
    client: TestRailClient = Depends(get_testrail_client),
):
    """List suites of a project; empty when the project has none."""
    return await client.list_suites(project_id)


@router.get("/projects/{project_id}/milestones", response_model=List[Milestone])
async def list_milestones(
    project_id: int = Path(..., description="TestRail project ID"),
    client: TestRailClient = Depends(get_testrail_client),
):
    """List milestones of a project."""
    return await client.list_milestones(project_id)


@router.get("/projects/{project_id}/runs", response_model=List[Run])
async def list_runs(
    project_id: int = Path(..., description="TestRail project ID"),
    client: TestRailClient = Depends(get_testrail_client),
):
    """List runs of a project, e.g. to pick one for reuse."""
    return await client.list_runs(project_id)
