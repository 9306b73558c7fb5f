"""Sync request, options and report models."""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Union, Any, Dict
from enum import Enum

from testrail_sync.models.report import ReportSuite
from testrail_sync.utils.testrail_helpers import is_valid_extra_parameters

DEFAULT_RUN_SOURCE = "testrail-sync"


class SyncOptions(BaseModel):
    """Everything a single sync needs besides the report tree."""
    project: Union[int, str] = Field(..., description="TestRail project ID or name")
    suite: Union[int, str] = Field(..., description="TestRail suite ID or name")
    milestone: Optional[str] = Field(None, description="Milestone name attached to new runs")
    enable_milestone: bool = Field(False, description="Attach the milestone to new runs")
    create_missing_cases: bool = Field(False, description="Create cases missing in TestRail")
    use_existing_run: bool = Field(False, description="Submit to test_run instead of a new run")
    test_run: str = Field("0", description="Existing run ID used with use_existing_run")
    extra_parameters: str = Field("", description="JSON object merged into every result")
    run_description: str = Field(
        f"Automated results from {DEFAULT_RUN_SOURCE}",
        description="Description of newly created runs"
    )
    run_name: Optional[str] = Field(None, description="Name of newly created runs")

    @field_validator("extra_parameters")
    @classmethod
    def extra_parameters_is_object(cls, value: str) -> str:
        if not is_valid_extra_parameters(value):
            raise ValueError("Extra Parameters must be either an empty string or a valid JSON object.")
        return value

    @model_validator(mode="after")
    def existing_run_needs_id(self):
        """A reused run must be a real run id."""
        if self.use_existing_run:
            run = (self.test_run or "").strip()
            if not run.isdigit() or int(run) == 0:
                raise ValueError("'test_run' must be a run ID when 'use_existing_run' is set.")
        return self

    @classmethod
    def from_settings(cls, settings: Any, **overrides: Any) -> "SyncOptions":
        """Build options from application settings; None overrides are ignored."""
        values: Dict[str, Any] = {
            "project": settings.testrail_project_id,
            "suite": settings.testrail_suite_id,
            "milestone": settings.testrail_milestone or None,
            "enable_milestone": settings.enable_milestone,
            "create_missing_cases": settings.create_missing_cases,
            "use_existing_run": settings.use_existing_run,
            "test_run": settings.test_run,
            "extra_parameters": settings.extra_parameters,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class SyncRequest(BaseModel):
    """Request to push a local report tree to TestRail."""
    suites: List[ReportSuite] = Field(default_factory=list, description="Top-level report suites")
    project: Optional[Union[int, str]] = Field(None, description="Override project ID or name")
    suite: Optional[Union[int, str]] = Field(None, description="Override suite ID or name")
    milestone: Optional[str] = Field(None, description="Override milestone name")
    enable_milestone: Optional[bool] = Field(None, description="Override milestone toggle")
    create_missing_cases: Optional[bool] = Field(None, description="Override case creation policy")
    use_existing_run: Optional[bool] = Field(None, description="Override run reuse")
    test_run: Optional[str] = Field(None, description="Override existing run ID")
    extra_parameters: Optional[str] = Field(None, description="Override extra parameters JSON")
    source: Optional[str] = Field(None, description="Where the results come from, e.g. a build URL")
    run_name: Optional[str] = Field(None, description="Name of the created run")

    def to_options(self, settings: Any) -> SyncOptions:
        return SyncOptions.from_settings(
            settings,
            project=self.project,
            suite=self.suite,
            milestone=self.milestone,
            enable_milestone=self.enable_milestone,
            create_missing_cases=self.create_missing_cases,
            use_existing_run=self.use_existing_run,
            test_run=self.test_run,
            extra_parameters=self.extra_parameters,
            run_description=f"Automated results from {self.source}" if self.source else None,
            run_name=self.run_name,
        )


class SyncReport(BaseModel):
    """Outcome of one sync, surfaced to the operator."""
    success: bool = Field(False, description="Whether results were accepted by TestRail")
    run_id: Optional[int] = Field(None, description="Run the results were submitted to")
    results_submitted: int = Field(0, ge=0, description="Number of results in the upload")
    status_code: Optional[int] = Field(None, description="HTTP status of the upload")
    body: Optional[str] = Field(None, description="Response body when the upload failed")
    messages: List[str] = Field(default_factory=list, description="Operator-facing log lines")


class CheckLevel(str, Enum):
    """Severity of a configuration check message."""
    WARNING = "warning"
    ERROR = "error"


class CheckMessage(BaseModel):
    """One configuration problem."""
    field: str = Field(..., description="Setting the message is about")
    level: CheckLevel = Field(..., description="Severity")
    message: str = Field(..., description="What to fix")


class ConnectionCheck(BaseModel):
    """Result of validating the TestRail connection settings."""
    ok: bool = Field(..., description="No errors or warnings were found")
    reachable: bool = Field(False, description="Host answered")
    authenticated: bool = Field(False, description="Credentials were accepted")
    messages: List[CheckMessage] = Field(default_factory=list, description="Problems found")
