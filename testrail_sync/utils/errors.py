"""
TestRail Sync Errors
Exceptions raised by the TestRail client and the sync flow, and the shared
error logger.
"""

from typing import Any, Dict, Optional
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Codes returned in the ``code`` field of error responses."""

    # Request problems (4xx)
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # TestRail problems (5xx)
    TESTRAIL_UNAVAILABLE = "TESTRAIL_UNAVAILABLE"
    TESTRAIL_REQUEST_FAILED = "TESTRAIL_REQUEST_FAILED"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class BaseAPIException(Exception):
    """
    Error that knows how it is reported over HTTP.

    Args:
        message: Text shown as ``error``
        code: Machine readable code
        status_code: HTTP status used by the exception handler
        details: Raw context, usually a TestRail response body
        suggestion: Hint for the operator
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        status_code: int = 500,
        details: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        self.suggestion = suggestion

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code.value,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ElementNotFoundException(BaseAPIException):
    """
    A named TestRail entity (project, suite, section, case, milestone, run)
    does not exist, or a listing could not be parsed.

    ``element`` identifies what was looked up; ``details`` carries the raw
    response body when there is one.
    """

    def __init__(self, element: str, details: Optional[str] = None):
        self.element = element
        super().__init__(
            message=element,
            code=ErrorCode.NOT_FOUND,
            status_code=404,
            details=details,
            suggestion="Please check the project, suite and run configuration."
        )


class RemoteServiceException(BaseAPIException):
    """A POST to TestRail finished with a status other than 200."""

    def __init__(self, path: str, body: str, response_status: Optional[int] = None):
        self.path = path
        self.body = body
        self.response_status = response_status
        super().__init__(
            message=f"Posting to {path} returned an error! Response from TestRail is: \n{body}",
            code=ErrorCode.TESTRAIL_REQUEST_FAILED,
            status_code=502,
            details=body,
            suggestion="Check the TestRail response above and the sync configuration."
        )


def log_error(
    error: Exception,
    context: str,
    additional_data: Optional[Dict[str, Any]] = None
):
    """
    Log an exception together with what the service was doing.

    The structured fields go to ``extra["error_context"]`` so handlers can
    pick them up; the message itself stays readable.

    Args:
        error: Exception being reported
        context: What was being done, e.g. "closing run 12"
        additional_data: Extra fields for the structured record
    """
    record = {
        "context": context,
        "exception": type(error).__name__,
        "detail": str(error),
        **(additional_data or {}),
    }
    logger.error(f"Error in {context}: {error}", extra={"error_context": record})
