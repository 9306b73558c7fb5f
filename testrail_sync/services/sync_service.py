"""
Result Sync Service
Pushes one local report tree into TestRail.

Flow for a sync:
1. Load the existing sections and cases of the target project/suite
2. Reconcile every top-level report suite into one merged result set
3. Create a run (or reuse the configured one)
4. Submit all results in a single call
5. Close the run unless it was reused; a failed close fails the sync
"""

import logging
from typing import List, Optional

import httpx

from testrail_sync.models.report import ReportSuite
from testrail_sync.models.sync import SyncOptions, SyncReport
from testrail_sync.models.testrail import ResultSet
from testrail_sync.services.hierarchy_cache import ExistingTestCases
from testrail_sync.services.reconciler import TreeReconciler
from testrail_sync.services.testrail_client import TestRailClient
from testrail_sync.utils.errors import ElementNotFoundException, RemoteServiceException, log_error

logger = logging.getLogger(__name__)


class ResultSyncService:
    """
    Runs one sync with its own client and cache.

    Args:
        client: TestRail client owned by this sync
        options: Target and policy for this sync
    """

    def __init__(self, client: TestRailClient, options: SyncOptions):
        self.client = client
        self.options = options
        self._report = SyncReport()

    def _note(self, message: str, level: int = logging.INFO) -> None:
        """Log a line and keep it for the operator."""
        logger.log(level, message)
        self._report.messages.append(message)

    async def run(self, suites: List[ReportSuite]) -> SyncReport:
        """
        Execute the sync.

        Returns:
            SyncReport with success True only if TestRail accepted the results
        """
        self._report = SyncReport()
        report = self._report

        try:
            existing = await ExistingTestCases.load(self.client, self.options.project, self.options.suite)
        except ElementNotFoundException as e:
            self._note(
                "Cannot find project or suite on TestRail server. "
                "Please check your project and suite configuration.",
                logging.ERROR,
            )
            self._note(f"Element not found: {e.message}", logging.ERROR)
            return report

        self._log_case_names(existing)

        self._note("Munging test result files.")
        results = await self._collect_results(existing, suites)

        self._note("Uploading results to TestRail.")
        run_id = await self._resolve_run(existing)
        if run_id is None:
            return report
        report.run_id = run_id

        logger.debug(f"Submitting results for cases {results.case_ids()} to run {run_id}")
        try:
            response = await self.client.add_results_for_cases(
                run_id, results, self.options.extra_parameters
            )
        except RemoteServiceException as e:
            self._note("Error pushing results to TestRail", logging.ERROR)
            self._note(e.message, logging.ERROR)
            report.status_code = e.response_status
            report.body = e.body
            return report

        # any answer other than 200 was raised above
        report.status_code = response.status
        report.results_submitted = len(results)
        report.success = True
        self._note(f"Successfully uploaded {len(results)} test results.")

        if not self.options.use_existing_run:
            await self._close_run(run_id)

        return report

    def _log_case_names(self, existing: ExistingTestCases) -> None:
        self._note("Test Cases: ")
        for name in existing.list_case_names():
            self._note(f"  {name}", logging.DEBUG)

    async def _collect_results(self, existing: ExistingTestCases, suites: List[ReportSuite]) -> ResultSet:
        """Reconcile each top-level suite; one failing suite does not stop the others."""
        reconciler = TreeReconciler(existing, create_missing_cases=self.options.create_missing_cases)
        results = ResultSet()
        for suite in suites:
            try:
                results.merge(await reconciler.add_suite(suite))
            except Exception as e:
                log_error(e, f"reconciling suite '{suite.name}'")
                self._note(f"Failed to create missing Test Suites in TestRail for '{suite.name}'.", logging.ERROR)
                self._note(f"EXCEPTION: {e}", logging.ERROR)
        return results

    async def _resolve_run(self, existing: ExistingTestCases) -> Optional[int]:
        """Reuse the configured run or create a new one; None aborts the sync."""
        if self.options.use_existing_run:
            run_id = int(self.options.test_run)
            self._note(f"Using existing run {run_id}.")
            return run_id

        milestone_id: Optional[str] = None
        try:
            if self.options.enable_milestone and self.options.milestone:
                milestone_id = await self.client.get_milestone_id(self.options.milestone, existing.project_id)
            return await self.client.add_run(
                existing.project_id,
                existing.suite_id,
                milestone_id,
                self.options.run_description,
                name=self.options.run_name,
            )
        except ElementNotFoundException as e:
            self._note(f"Error creating run in TestRail: {e.message}", logging.ERROR)
        except RemoteServiceException as e:
            self._note("Error pushing results to TestRail", logging.ERROR)
            self._note(e.message, logging.ERROR)
            self._report.status_code = e.response_status
            self._report.body = e.body
        return None

    async def _close_run(self, run_id: int) -> None:
        """Close a run created by this sync; a failed close fails the sync."""
        report = self._report
        try:
            await self.client.close_run(run_id)
        except RemoteServiceException as e:
            log_error(e, f"closing run {run_id}", {"status_code": e.response_status})
            self._note("Failed to close test run in TestRail.", logging.ERROR)
            self._note(e.message, logging.ERROR)
            report.success = False
            report.status_code = e.response_status
            report.body = e.body
        except httpx.TransportError as e:
            log_error(e, f"closing run {run_id}")
            self._note("Failed to close test run in TestRail.", logging.ERROR)
            self._note(f"EXCEPTION: {e}", logging.ERROR)
            report.success = False
            report.status_code = None
            report.body = None
