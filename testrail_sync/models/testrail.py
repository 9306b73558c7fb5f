"""TestRail models for projects, suites, sections, cases, runs and results."""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from enum import IntEnum

from testrail_sync.utils.testrail_helpers import format_elapsed


def _id_to_str(value: Any) -> Any:
    """TestRail sends numeric ids; runs and milestones keep them as strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


class CaseStatus(IntEnum):
    """TestRail result status ids."""
    PASSED = 1
    BLOCKED = 2
    UNTESTED = 3
    RETEST = 4
    FAILED = 5


class Project(BaseModel):
    """TestRail project."""
    id: int = Field(..., description="Project ID")
    name: str = Field(..., description="Project name")


class Suite(BaseModel):
    """TestRail suite within a project."""
    id: int = Field(..., description="Suite ID")
    name: str = Field(..., description="Suite name")


class Section(BaseModel):
    """TestRail section; top-level when parent_id is None."""
    id: int = Field(..., description="Section ID")
    name: str = Field(..., description="Section name")
    parent_id: Optional[int] = Field(None, description="Parent section ID")
    suite_id: Optional[int] = Field(None, description="Suite ID")


class Case(BaseModel):
    """TestRail case belonging to exactly one section."""
    id: int = Field(..., description="Case ID")
    title: str = Field(..., description="Case title")
    section_id: int = Field(..., description="Section ID")
    refs: Optional[str] = Field(None, description="References, e.g. requirement keys")


class Run(BaseModel):
    """TestRail run collecting results against one suite."""
    id: str = Field(..., description="Run ID")
    suite_id: Optional[str] = Field(None, description="Suite ID")
    name: str = Field(..., description="Run name")
    milestone_id: Optional[str] = Field(None, description="Milestone ID")

    @field_validator("id", "suite_id", "milestone_id", mode="before")
    @classmethod
    def coerce_ids(cls, value: Any) -> Any:
        return _id_to_str(value)


class Milestone(BaseModel):
    """TestRail milestone."""
    id: str = Field(..., description="Milestone ID")
    name: str = Field(..., description="Milestone name")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _id_to_str(value)


class Result(BaseModel):
    """One case outcome inside one run."""
    case_id: int = Field(..., description="TestRail case ID")
    status: CaseStatus = Field(..., description="Result status")
    comment: Optional[str] = Field(None, description="Failure message and details")
    elapsed: Optional[float] = Field(None, ge=0, description="Execution time in seconds")

    def to_payload(self, extra_parameters: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Serialize for add_results_for_cases; extra parameters win on key clashes."""
        payload: Dict[str, Any] = {
            "case_id": self.case_id,
            "status_id": self.status.value,
            "comment": self.comment,
            "elapsed": format_elapsed(self.elapsed),
        }
        if extra_parameters:
            payload.update(extra_parameters)
        return payload


class ResultSet(BaseModel):
    """
    Ordered results awaiting submission.

    Duplicate case ids are kept; TestRail applies the later entry.
    """
    results: List[Result] = Field(default_factory=list, description="Results in submission order")

    def add_result(self, result: Result) -> None:
        self.results.append(result)

    def merge(self, other: Optional["ResultSet"]) -> "ResultSet":
        """Append every entry of ``other``; returns self for chaining."""
        if other is not None:
            self.results.extend(other.results)
        return self

    def case_ids(self) -> List[int]:
        return [r.case_id for r in self.results]

    def __len__(self) -> int:
        return len(self.results)


class ApiResponse(BaseModel):
    """Raw status and body of a TestRail call."""
    status: int = Field(..., description="HTTP status code")
    body: str = Field("", description="Response body text")
