"""Error taxonomy shared by every part of the client.

Every failure surfaced by the library is a ``StyleClientError`` subclass whose
``message`` is a readable sentence, so callers can log or display it as is.
HTTP failures keep the status code and the decoded error body for callers
that want to inspect them further.
"""

import asyncio
from enum import Enum
from typing import Any, Dict, List, Optional

import aiohttp
import pydantic


class ErrorKind(str, Enum):
    validation = "validation"
    network = "network"
    http = "http"
    missing_workflow_id = "missing_workflow_id"
    workflow_failed = "workflow_failed"
    workflow_timeout = "workflow_timeout"
    malformed_response = "malformed_response"
    cancelled = "cancelled"
    application = "application"


class StyleClientError(Exception):
    """Base class for all errors raised by the client"""

    kind: ErrorKind = ErrorKind.application

    def __init__(
        self, message: str, status_code: Optional[int] = None, raw: Any = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw = raw

    @property
    def is_api_error(self) -> bool:
        return self.status_code is not None


class ValidationError(StyleClientError):
    """The request was rejected locally; nothing was sent"""

    kind = ErrorKind.validation

    @classmethod
    def from_pydantic(
        cls, error: pydantic.ValidationError, subject: str
    ) -> "ValidationError":
        problems = "; ".join(
            f"{'.'.join(str(part) for part in item['loc']) or subject}: {item['msg']}"
            for item in error.errors()
        )
        return cls(f"Invalid {subject}: {problems}", raw=error.errors())


class NetworkError(StyleClientError):
    """No response was received from the service"""

    kind = ErrorKind.network


class HttpError(StyleClientError):
    """The service answered with a status outside 2xx"""

    kind = ErrorKind.http

    def __init__(self, status_code: int, message: str, raw: Any = None) -> None:
        super().__init__(message, status_code=status_code, raw=raw)

    @classmethod
    def from_response(cls, status_code: int, body: Any) -> "HttpError":
        return cls(status_code, extract_error_message(body, status_code), raw=body)

    @property
    def is_validation_error(self) -> bool:
        return self.status_code == 422

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code in (401, 403)

    def validation_errors(self) -> Dict[str, List[str]]:
        """Group FastAPI-style ``detail`` entries by their dotted field location"""
        detail = self.raw.get("detail") if isinstance(self.raw, dict) else None
        if not isinstance(detail, list):
            return {}

        errors: Dict[str, List[str]] = {}
        for item in detail:
            if not isinstance(item, dict) or not isinstance(item.get("msg"), str):
                continue
            field = ".".join(str(part) for part in item.get("loc") or [])
            errors.setdefault(field, []).append(item["msg"])
        return errors


class MissingWorkflowIdError(StyleClientError):
    kind = ErrorKind.missing_workflow_id

    def __init__(self, resource: str, response: Any = None) -> None:
        message = f"No workflow_id received from initial {resource} request"
        server_message = response.get("message") if isinstance(response, dict) else None
        if isinstance(server_message, str) and server_message:
            message = f"{message}: {server_message}"
        super().__init__(message, raw=response)
        self.resource = resource


class WorkflowFailedError(StyleClientError):
    kind = ErrorKind.workflow_failed

    def __init__(
        self, workflow_id: str, detail: Optional[str] = None, raw: Any = None
    ) -> None:
        if detail:
            message = f"Workflow failed: {detail}"
        else:
            message = "Workflow failed with status: failed"
        super().__init__(message, raw=raw)
        self.workflow_id = workflow_id
        self.detail = detail


class WorkflowTimeoutError(StyleClientError):
    kind = ErrorKind.workflow_timeout

    def __init__(
        self, workflow_id: str, attempts: int, timeout: Optional[float] = None
    ) -> None:
        if timeout is None:
            message = f"Workflow timed out after {attempts} attempts"
        else:
            message = f"Workflow timed out after {timeout:g} seconds ({attempts} attempts)"
        super().__init__(message)
        self.workflow_id = workflow_id
        self.attempts = attempts
        self.timeout = timeout


class MalformedResponseError(StyleClientError):
    """A successful response did not have the expected shape"""

    kind = ErrorKind.malformed_response


class CancelledError(StyleClientError):
    """The caller asked for the operation to stop"""

    kind = ErrorKind.cancelled


class ApplicationError(StyleClientError):
    kind = ErrorKind.application


def extract_error_message(body: Any, status_code: int) -> str:
    """Pick the readable message out of an error body.

    ``detail`` wins over ``message``; either only counts when it is a non-blank
    string.
    Anything else, including a body that was not JSON, gets a generic message.
    """
    if isinstance(body, dict):
        for key in ("detail", "message"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return f"HTTP error! status: {status_code}"


def normalize_error(error: BaseException) -> StyleClientError:
    """Map any raised exception onto the client's error taxonomy"""
    if isinstance(error, StyleClientError):
        return error
    if isinstance(error, aiohttp.ClientResponseError):
        message = error.message or f"HTTP error! status: {error.status}"
        return HttpError(error.status, message)
    if isinstance(error, aiohttp.InvalidURL):
        return NetworkError(f"Invalid URL: {error}")
    if isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError, OSError)):
        return NetworkError(str(error) or type(error).__name__)
    if isinstance(error, pydantic.ValidationError):
        return ApplicationError(f"Unexpected data: {error}")
    return ApplicationError(str(error) or "Unknown error occurred")
