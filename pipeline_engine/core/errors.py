# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Error taxonomy for the pipeline engine.

Every error raised across a service boundary is a PipelineEngineError and
carries the HTTP status the API answers with. The FastAPI handler in
main.py turns them into JSON via to_dict().
"""

from typing import Any, Dict, Optional


class PipelineEngineError(Exception):
    """Base class; status_code is what the API responds with."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[dict] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """JSON body for API error responses"""
        body: Dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
        }
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(PipelineEngineError):
    """A pipeline, workflow or execution that does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: str, details: Optional[dict] = None):
        super().__init__(f"{resource} not found: {identifier}", details=details)
        self.resource = resource
        self.identifier = identifier


class ValidationError(PipelineEngineError):
    """
    Client input the engine refuses.

    Args:
        message: What is wrong
        field: camelCase name of the offending request field, if any
    """

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, details=details)
        self.field = field


class ConfigurationError(PipelineEngineError):
    """Unreadable or malformed engine configuration."""

    def __init__(self, message: str, config_file: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.config_file = config_file


class ExecutionError(PipelineEngineError):
    """An execution record was driven through an illegal state change."""

    def __init__(self, message: str, execution_id: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.execution_id = execution_id


class UnauthorizedError(PipelineEngineError):
    """Missing, expired or invalid owner signature."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[dict] = None):
        super().__init__(message, details=details)


class ForbiddenError(PipelineEngineError):
    """Valid signature, but not from the pipeline's owner."""

    status_code = 403

    def __init__(self, message: str = "Forbidden", resource: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details=details)
        self.resource = resource


MAX_USER_ERROR_LENGTH = 500


def sanitize_error_for_user(error: Exception, include_type: bool = True) -> str:
    """
    Error text safe to store in a step result.

    Keeps only the first line of the message (no tracebacks from remote
    workflows) and truncates it.
    """
    lines = str(error).strip().splitlines()
    text = lines[0] if lines else ""
    if len(text) > MAX_USER_ERROR_LENGTH:
        text = text[:MAX_USER_ERROR_LENGTH] + "..."

    if include_type:
        return f"{type(error).__name__}: {text}" if text else type(error).__name__
    return text
