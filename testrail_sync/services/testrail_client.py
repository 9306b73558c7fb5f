"""
TestRail API Client

Thin async client for the TestRail v2 API covering what result syncing needs:
project and suite discovery, section and case lookup or creation, run
lifecycle, milestones and result submission.

Every request is retried while TestRail answers 429. POST requests that end
with any other non-200 status raise RemoteServiceException; GET requests hand
the status back so each listing can decide what an odd answer means.
"""

import base64
import json
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from testrail_sync.models.report import ReportCase
from testrail_sync.models.testrail import (
    ApiResponse,
    Case,
    Milestone,
    Project,
    ResultSet,
    Run,
    Section,
    Suite,
)
from testrail_sync.services.base_service import BaseAPIService
from testrail_sync.utils.errors import ElementNotFoundException, RemoteServiceException
from testrail_sync.utils.retry import RateLimitPolicy, retry_while_rate_limited
from testrail_sync.utils.testrail_helpers import extract_items, parse_extra_parameters

API_PREFIX = "index.php?/api/v2/"

ModelT = TypeVar("ModelT", bound=BaseModel)


class TestRailClient(BaseAPIService):
    """
    Client for one TestRail instance and one set of credentials.

    Not shared between syncs; each sync opens its own client.
    """

    def __init__(
        self,
        host: str,
        user: str,
        password: str,
        *,
        retry_policy: Optional[RateLimitPolicy] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            host: TestRail base URL, e.g. https://example.testrail.io
            user: Login e-mail
            password: Password or API key
            retry_policy: Rate-limit retry configuration
            timeout: Request timeout in seconds
            transport: Optional httpx transport
        """
        self.user = user
        self.password = password
        self.retry_policy = retry_policy or RateLimitPolicy()
        super().__init__(
            base_url=host,
            headers=self._create_auth_headers(user, password),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "TestRailClient":
        """Create a client from application settings."""
        kwargs.setdefault("retry_policy", RateLimitPolicy(interval=settings.rate_limit_retry_seconds))
        kwargs.setdefault("timeout", settings.request_timeout)
        return cls(settings.testrail_host, settings.testrail_user, settings.testrail_password, **kwargs)

    @staticmethod
    def _create_auth_headers(user: str, password: str) -> Dict[str, str]:
        """Preemptive basic authentication headers."""
        credentials = f"{user}:{password}"
        encoded_credentials = base64.b64encode(credentials.encode()).decode()
        return {
            "Authorization": f"Basic {encoded_credentials}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def api_url(self, endpoint: str) -> str:
        """Full URL for an endpoint such as ``get_projects``."""
        return f"{self.base_url}/{API_PREFIX}{endpoint}"

    # =============================================================================
    # HTTP HELPERS
    # =============================================================================

    async def http_get(self, endpoint: str) -> ApiResponse:
        """GET with rate-limit retries; the status is not interpreted."""
        url = self.api_url(endpoint)
        response = await retry_while_rate_limited(
            lambda: self.send_once("GET", url),
            self.retry_policy,
            description=f"GET {endpoint}",
        )
        return ApiResponse(status=response.status_code, body=response.text)

    async def http_post(self, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """
        POST with rate-limit retries.

        Raises:
            RemoteServiceException: If the final status is not 200
        """
        url = self.api_url(endpoint)
        response = await retry_while_rate_limited(
            lambda: self.send_once("POST", url, payload),
            self.retry_policy,
            description=f"POST {endpoint}",
        )
        if response.status_code != 200:
            self.logger.error(
                "HTTP ERROR POST %s -> %s %s",
                endpoint, response.status_code, (response.text or "")[:300].replace("\n", " ")
            )
            raise RemoteServiceException(f"{API_PREFIX}{endpoint}", response.text, response.status_code)
        return ApiResponse(status=response.status_code, body=response.text)

    @staticmethod
    def _parse_json(body: str) -> Any:
        try:
            return json.loads(body)
        except (TypeError, json.JSONDecodeError) as e:
            raise ValueError(f"Response is not JSON: {e}") from e

    async def _collect_pages(self, data: Any, key: str) -> List[Any]:
        """Concatenate every page of a collection, starting from an already fetched one."""
        items, next_endpoint = extract_items(data, key)
        items = list(items)
        while next_endpoint:
            page = await self.http_get(next_endpoint)
            more, next_endpoint = extract_items(self._parse_json(page.body), key)
            items.extend(more)
        return items

    async def _load_models(
        self,
        endpoint: str,
        key: str,
        model: Type[ModelT],
        not_found: str,
    ) -> List[ModelT]:
        """
        Fetch a collection and parse it into models.

        Raises:
            ElementNotFoundException: If the body is not a collection of ``model``
        """
        response = await self.http_get(endpoint)
        try:
            raw_items = await self._collect_pages(self._parse_json(response.body), key)
            return [model.model_validate(item) for item in raw_items]
        except ValueError as e:
            raise ElementNotFoundException(
                f"{not_found}! Response from TestRail is: \n{response.body}",
                details=response.body,
            ) from e

    def _parse_created(self, endpoint: str, response: ApiResponse, model: Type[ModelT]) -> ModelT:
        """Parse the entity TestRail echoes back after a successful add_* call."""
        try:
            return model.model_validate(self._parse_json(response.body))
        except ValueError as e:
            raise RemoteServiceException(f"{API_PREFIX}{endpoint}", response.body, response.status) from e

    # =============================================================================
    # CONNECTIVITY
    # =============================================================================

    async def server_reachable(self) -> bool:
        """True if anything answers at the host URL; never raises."""
        try:
            await self.send_once("GET", self.base_url)
            return True
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            self.logger.info(f"TestRail host {self.base_url!r} is not reachable: {e}")
            return False

    async def authentication_works(self) -> bool:
        """True if an authenticated read succeeds with status 200; never raises."""
        try:
            response = await self.http_get("get_projects")
            return response.status == 200
        except Exception as e:
            self.logger.info(f"TestRail authentication check failed: {e}")
            return False

    # =============================================================================
    # PROJECTS, SUITES, RUNS
    # =============================================================================

    async def list_projects(self) -> List[Project]:
        """
        List all projects.

        TestRail returns a bare object instead of an array when exactly one
        project exists; that object is treated as a one-element list.
        """
        response = await self.http_get("get_projects")
        try:
            data = self._parse_json(response.body)
            if isinstance(data, dict) and not isinstance(data.get("projects"), list):
                raw_items = [data]
            else:
                raw_items = await self._collect_pages(data, "projects")
            return [Project.model_validate(item) for item in raw_items]
        except ValueError as e:
            raise ElementNotFoundException(
                f"Projects could not be read! Response from TestRail is: \n{response.body}",
                details=response.body,
            ) from e

    async def get_project_id(self, project_name: str) -> int:
        """Case-sensitive exact match on the project name."""
        for project in await self.list_projects():
            if project.name == project_name:
                return project.id
        raise ElementNotFoundException(project_name)

    async def list_suites(self, project_id: int) -> List[Suite]:
        """List suites; an unreadable answer means the project has none."""
        try:
            return await self._load_models(
                f"get_suites/{project_id}", "suites", Suite, f"No suites for project {project_id}"
            )
        except ElementNotFoundException:
            return []

    async def get_suite_id(self, suite_name: str, project_id: int) -> int:
        """Exact match on the suite name within a project."""
        for suite in await self.list_suites(project_id):
            if suite.name == suite_name:
                return suite.id
        raise ElementNotFoundException(suite_name)

    async def list_runs(self, project_id: int) -> List[Run]:
        """List runs; an unreadable answer is an error, an empty project still returns []."""
        return await self._load_models(
            f"get_runs/{project_id}", "runs", Run, f"No runs for project {project_id}"
        )

    async def add_run(
        self,
        project_id: int,
        suite_id: int,
        milestone_id: Optional[str],
        description: str,
        name: Optional[str] = None,
    ) -> int:
        """Create a run for the suite and return its id."""
        payload: Dict[str, Any] = {"suite_id": suite_id, "description": description}
        if milestone_id:
            payload["milestone_id"] = milestone_id
        if name:
            payload["name"] = name

        endpoint = f"add_run/{project_id}"
        response = await self.http_post(endpoint, payload)
        run = self._parse_created(endpoint, response, Run)
        self.logger.info(f"Created TestRail run {run.id} in project {project_id}")
        return int(run.id)

    async def close_run(self, run_id: int) -> bool:
        response = await self.http_post(f"close_run/{run_id}")
        return response.status == 200

    # =============================================================================
    # SECTIONS AND CASES
    # =============================================================================

    async def list_sections(self, project_id: int, suite_id: int) -> List[Section]:
        return await self._load_models(
            f"get_sections/{project_id}&suite_id={suite_id}",
            "sections",
            Section,
            f"No sections for project {project_id} and suite {suite_id}",
        )

    async def list_cases(self, project_id: int, suite_id: int) -> List[Case]:
        return await self._load_models(
            f"get_cases/{project_id}&suite_id={suite_id}",
            "cases",
            Case,
            f"No cases for project {project_id} and suite {suite_id}",
        )

    async def add_section(
        self,
        section_name: str,
        project_id: int,
        suite_id: int,
        parent_id: Optional[int] = None,
    ) -> Section:
        """Create a section; ``parent_id`` None creates a top-level section."""
        payload: Dict[str, Any] = {"name": section_name, "suite_id": suite_id}
        if parent_id is not None:
            payload["parent_id"] = parent_id

        endpoint = f"add_section/{project_id}"
        response = await self.http_post(endpoint, payload)
        return self._parse_created(endpoint, response, Section)

    async def add_case(self, case: ReportCase, section_id: int) -> Case:
        """Create a case titled after the report case, carrying its refs."""
        payload: Dict[str, Any] = {"title": case.name}
        if case.refs:
            payload["refs"] = case.refs

        endpoint = f"add_case/{section_id}"
        response = await self.http_post(endpoint, payload)
        return self._parse_created(endpoint, response, Case)

    # =============================================================================
    # RESULTS
    # =============================================================================

    async def add_results_for_cases(
        self,
        run_id: int,
        results: ResultSet,
        extra_parameters: Optional[str] = "",
    ) -> ApiResponse:
        """
        Submit all results in one call.

        Args:
            run_id: Target run
            results: Results in submission order
            extra_parameters: Empty, or a JSON object merged into every result

        Raises:
            ValueError: If extra_parameters is not a JSON object
            RemoteServiceException: If TestRail rejects the upload
        """
        extras = parse_extra_parameters(extra_parameters)
        payload = {"results": [r.to_payload(extras) for r in results.results]}
        self.logger.debug(f"Submitting results to run {run_id}: {json.dumps(payload)}")
        return await self.http_post(f"add_results_for_cases/{run_id}", payload)

    # =============================================================================
    # MILESTONES
    # =============================================================================

    async def list_milestones(self, project_id: int) -> List[Milestone]:
        """List milestones; an unreadable answer means there are none."""
        try:
            return await self._load_models(
                f"get_milestones/{project_id}", "milestones", Milestone,
                f"No milestones for project {project_id}"
            )
        except ElementNotFoundException:
            return []

    async def get_milestone_id(self, milestone_name: str, project_id: int) -> str:
        for milestone in await self.list_milestones(project_id):
            if milestone.name == milestone_name:
                return milestone.id
        raise ElementNotFoundException(f"Milestone {milestone_name} not found in Project {project_id}")

    async def get_milestone_name(self, milestone_id: str, project_id: int) -> str:
        wanted = str(milestone_id)
        for milestone in await self.list_milestones(project_id):
            if milestone.id == wanted:
                return milestone.name
        raise ElementNotFoundException(f"Milestone {milestone_id} not found in Project {project_id}")
