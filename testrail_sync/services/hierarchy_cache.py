"""
Existing Test Cases Cache
Snapshot of one project/suite's sections and cases in TestRail.

Loaded once per sync and updated in place as sections and cases get created,
so the reconciler never repeats a lookup against the server. One instance
belongs to one sync; it is never shared.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from testrail_sync.models.report import ReportCase
from testrail_sync.models.testrail import Case, Section
from testrail_sync.services.testrail_client import TestRailClient
from testrail_sync.utils.errors import ElementNotFoundException

logger = logging.getLogger(__name__)


class ExistingTestCases:
    """
    Name-indexed view of a suite's sections and cases with create-on-miss
    helpers. Use ``await ExistingTestCases.load(...)`` to build one.
    """

    def __init__(
        self,
        client: TestRailClient,
        project_id: int,
        suite_id: int,
        sections: List[Section],
        cases: List[Case],
    ):
        self.client = client
        self.project_id = project_id
        self.suite_id = suite_id
        self._sections: List[Section] = []
        self._cases: List[Case] = []
        self._sections_by_name: Dict[str, Section] = {}
        self._cases_by_key: Dict[Tuple[int, str], Case] = {}
        for section in sections:
            self._remember_section(section)
        for case in cases:
            self._remember_case(case)

    @classmethod
    async def load(
        cls,
        client: TestRailClient,
        project: Union[int, str],
        suite: Union[int, str],
    ) -> "ExistingTestCases":
        """
        Resolve the project and suite, then fetch their sections and cases.

        Args:
            client: TestRail client for this sync
            project: Project ID, or project name
            suite: Suite ID, or suite name

        Raises:
            ElementNotFoundException: If the project or suite does not exist
        """
        project_id = await cls._resolve_project(client, project)
        suite_id = await cls._resolve_suite(client, project_id, suite)

        sections = await client.list_sections(project_id, suite_id)
        cases = await client.list_cases(project_id, suite_id)
        logger.info(
            f"Loaded {len(sections)} sections and {len(cases)} cases "
            f"for project {project_id}, suite {suite_id}"
        )
        return cls(client, project_id, suite_id, sections, cases)

    @staticmethod
    async def _resolve_project(client: TestRailClient, project: Union[int, str]) -> int:
        if isinstance(project, str):
            return await client.get_project_id(project)
        if not any(p.id == project for p in await client.list_projects()):
            raise ElementNotFoundException(f"Project {project} not found")
        return project

    @staticmethod
    async def _resolve_suite(client: TestRailClient, project_id: int, suite: Union[int, str]) -> int:
        if isinstance(suite, str):
            return await client.get_suite_id(suite, project_id)
        suites = await client.list_suites(project_id)
        # single-suite projects may not list any suite at all
        if suites and not any(s.id == suite for s in suites):
            raise ElementNotFoundException(f"Suite {suite} not found in Project {project_id}")
        return suite

    def _remember_section(self, section: Section) -> None:
        self._sections.append(section)
        self._sections_by_name.setdefault(section.name, section)

    def _remember_case(self, case: Case) -> None:
        self._cases.append(case)
        self._cases_by_key.setdefault((case.section_id, case.title), case)

    @property
    def sections(self) -> List[Section]:
        return list(self._sections)

    @property
    def cases(self) -> List[Case]:
        return list(self._cases)

    def get_section_id(self, section_name: str) -> int:
        """First cached section with exactly this name."""
        section = self._sections_by_name.get(section_name)
        if section is None:
            raise ElementNotFoundException(f"Section {section_name} not found")
        return section.id

    async def add_section(self, section_name: str, parent_id: Optional[int] = None) -> int:
        """Create a section in TestRail and cache it; returns the new id."""
        section = await self.client.add_section(section_name, self.project_id, self.suite_id, parent_id)
        self._remember_section(section)
        logger.info(f"Created section '{section_name}' ({section.id}) under parent {parent_id}")
        return section.id

    def get_case_id(self, section_name: str, case_name: str) -> int:
        """
        Find a case by title inside the section with the given name.

        Raises:
            ElementNotFoundException: If the section or the case is missing
        """
        section_id = self.get_section_id(section_name)
        case = self._cases_by_key.get((section_id, case_name))
        if case is None:
            raise ElementNotFoundException(f"Case {case_name} not found in section {section_name}")
        return case.id

    async def add_case(self, case: ReportCase, section_id: int) -> int:
        """Create a case in TestRail and cache it; returns the new id."""
        created = await self.client.add_case(case, section_id)
        self._remember_case(created)
        logger.info(f"Created case '{case.name}' ({created.id}) in section {section_id}")
        return created.id

    def list_case_names(self) -> List[str]:
        """Titles of every cached case, in load/creation order."""
        return [case.title for case in self._cases]
