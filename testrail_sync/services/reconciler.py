"""
Tree Reconciler
Maps a local report tree onto TestRail sections and cases and collects the
results to upload.

Walks depth-first in report order. Every suite node becomes a section (found
by name or created under its parent), every case is matched by title inside
that section. A section or case that cannot be created only costs its own
subtree, whether TestRail rejected it or never answered; siblings carry on.
"""

import logging
from typing import Optional

import httpx

from testrail_sync.models.report import CaseOutcome, ReportCase, ReportSuite
from testrail_sync.models.testrail import CaseStatus, Result, ResultSet
from testrail_sync.services.hierarchy_cache import ExistingTestCases
from testrail_sync.utils.errors import ElementNotFoundException, RemoteServiceException

logger = logging.getLogger(__name__)


def classify(case: ReportCase, case_id: int) -> Optional[Result]:
    """
    Turn a report case into a result for ``case_id``.

    Failures and errors become FAILED with their message and text as comment,
    passes become PASSED. Skipped cases return None: TestRail is never told
    about them.
    """
    outcome = case.outcome
    if outcome is CaseOutcome.FAILURE:
        status, comment = CaseStatus.FAILED, case.failure.comment()
    elif outcome is CaseOutcome.ERROR:
        status, comment = CaseStatus.FAILED, case.error.comment()
    elif outcome is CaseOutcome.SKIPPED:
        return None
    else:
        status, comment = CaseStatus.PASSED, None
    return Result(case_id=case_id, status=status, comment=comment, elapsed=case.time)


class TreeReconciler:
    """
    Recursive section/case resolver for one sync.

    Args:
        existing: Cache for the target project and suite
        create_missing_cases: Create cases that TestRail does not know yet;
            otherwise such cases are silently left out
    """

    def __init__(self, existing: ExistingTestCases, create_missing_cases: bool = False):
        self.existing = existing
        self.create_missing_cases = create_missing_cases

    async def add_suite(self, suite: ReportSuite, parent_id: Optional[int] = None) -> ResultSet:
        """
        Reconcile one suite node and everything below it.

        Args:
            suite: Report suite node
            parent_id: Section id of the enclosing suite, None at top level

        Returns:
            Results of this subtree, children first, then this node's cases
        """
        results = ResultSet()

        section_id = await self._resolve_section(suite.name, parent_id)
        if section_id is None:
            return results

        for child in suite.suites:
            results.merge(await self.add_suite(child, section_id))

        for case in suite.cases:
            case_id = await self._resolve_case(suite.name, case, section_id)
            if case_id is None:
                continue
            result = classify(case, case_id)
            if result is not None:
                results.add_result(result)

        return results

    async def _resolve_section(self, name: str, parent_id: Optional[int]) -> Optional[int]:
        try:
            return self.existing.get_section_id(name)
        except ElementNotFoundException:
            pass

        try:
            return await self.existing.add_section(name, parent_id)
        except (ElementNotFoundException, RemoteServiceException, httpx.TransportError) as e:
            logger.warning(f"Unable to add test section '{name}', skipping its results: {e}")
            return None

    async def _resolve_case(self, section_name: str, case: ReportCase, section_id: int) -> Optional[int]:
        try:
            return self.existing.get_case_id(section_name, case.name)
        except ElementNotFoundException:
            if not self.create_missing_cases:
                logger.debug(f"Case '{case.name}' not in TestRail, not creating it")
                return None

        try:
            return await self.existing.add_case(case, section_id)
        except (ElementNotFoundException, RemoteServiceException, httpx.TransportError) as e:
            logger.warning(f"Unable to add test case '{case.name}', skipping its result: {e}")
            return None
