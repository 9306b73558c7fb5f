"""
Local test report models.

The report tree is produced by an external parser (JUnit XML or similar) and
only read here: suites nest suites and hold cases, and each case carries at
most one failure, error or skip marker.
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum


class CaseOutcome(str, Enum):
    """Outcome of a local case, in classification priority order."""
    FAILURE = "failure"
    ERROR = "error"
    SKIPPED = "skipped"
    PASSED = "passed"


class ReportFailure(BaseModel):
    """Failure or error marker with its message and detail text."""
    message: Optional[str] = Field(None, description="Short failure message")
    text: Optional[str] = Field(None, description="Detail text, e.g. a stack trace")

    def comment(self) -> Optional[str]:
        """Message first, then detail text, newline separated."""
        parts = [p for p in (self.message, self.text) if p]
        return "\n".join(parts) if parts else None


class ReportCase(BaseModel):
    """A single executed test case from the local report."""
    name: str = Field(..., min_length=1, description="Case name, matched against TestRail titles")
    refs: Optional[str] = Field(None, description="References copied to newly created cases")
    time: float = Field(0.0, ge=0, description="Elapsed time in seconds")
    failure: Optional[ReportFailure] = Field(None, description="Assertion failure marker")
    error: Optional[ReportFailure] = Field(None, description="Unexpected error marker")
    skipped: bool = Field(False, description="Skip marker")

    @property
    def outcome(self) -> CaseOutcome:
        # first match wins
        if self.failure is not None:
            return CaseOutcome.FAILURE
        if self.error is not None:
            return CaseOutcome.ERROR
        if self.skipped:
            return CaseOutcome.SKIPPED
        return CaseOutcome.PASSED


class ReportSuite(BaseModel):
    """A suite node of the local report; maps onto a TestRail section."""
    name: str = Field(..., min_length=1, description="Suite name, matched against section names")
    suites: List["ReportSuite"] = Field(default_factory=list, description="Nested suites in report order")
    cases: List[ReportCase] = Field(default_factory=list, description="Cases in report order")

    def count_cases(self) -> int:
        """Number of cases in this suite and all nested suites."""
        return len(self.cases) + sum(s.count_cases() for s in self.suites)


ReportSuite.model_rebuild()
