import asyncio

import aiohttp
import pydantic
import pytest
from style_analysis_client.errors import (
    ApplicationError,
    ErrorKind,
    HttpError,
    MissingWorkflowIdError,
    NetworkError,
    ValidationError,
    extract_error_message,
    normalize_error,
)
from style_analysis_client.models import AnalysisRequest


@pytest.mark.parametrize(
    "body, message",
    [
        ({"detail": "Rate limit exceeded"}, "Rate limit exceeded"),
        ({"detail": "first", "message": "second"}, "first"),
        ({"message": "Failed to list style guides"}, "Failed to list style guides"),
        ({"detail": "", "message": "real reason"}, "real reason"),
        ({"detail": "  "}, "HTTP error! status: 418"),
        ({"detail": 42, "message": 7}, "HTTP error! status: 418"),
        ([], "HTTP error! status: 418"),
        (None, "HTTP error! status: 418"),
    ],
)
def test_extract_error_message(body, message):
    assert extract_error_message(body, 418) == message


def test_normalize_error_classification():
    network = normalize_error(aiohttp.ClientConnectionError("Failed to fetch"))
    timeout = normalize_error(asyncio.TimeoutError())
    other = normalize_error(RuntimeError("decoder exploded"))
    existing = HttpError(500, "down")

    assert isinstance(network, NetworkError)
    assert network.message == "Failed to fetch"
    assert network.status_code is None
    assert isinstance(timeout, NetworkError)
    assert timeout.message == "TimeoutError"
    assert isinstance(other, ApplicationError)
    assert other.kind is ErrorKind.application
    assert normalize_error(existing) is existing


def test_normalize_invalid_url():
    normalized = normalize_error(aiohttp.InvalidURL("ftp://styles.example.com"))

    assert isinstance(normalized, NetworkError)
    assert normalized.message.startswith("Invalid URL: ")
    assert "ftp://styles.example.com" in normalized.message


def test_normalize_response_error_keeps_status():
    error = aiohttp.ClientResponseError(None, (), status=503, message="Service Unavailable")

    normalized = normalize_error(error)

    assert isinstance(normalized, HttpError)
    assert normalized.status_code == 503
    assert normalized.message == "Service Unavailable"
    assert normalized.is_api_error


def test_validation_errors_grouped_by_field():
    error = HttpError.from_response(
        422,
        {
            "detail": [
                {"loc": ["body", "tone"], "msg": "field required", "type": "missing"},
                {"loc": ["body", "tone"], "msg": "bad tone", "type": "value_error"},
                {"loc": ["body", "dialect"], "msg": "bad dialect", "type": "value_error"},
            ]
        },
    )

    assert error.message == "HTTP error! status: 422"
    assert error.is_validation_error
    assert error.validation_errors() == {
        "body.tone": ["field required", "bad tone"],
        "body.dialect": ["bad dialect"],
    }


def test_missing_workflow_id_message():
    plain = MissingWorkflowIdError("rewrite", {"status": "error"})
    with_reason = MissingWorkflowIdError("check", {"status": "error", "message": "bad"})

    assert str(plain) == "No workflow_id received from initial rewrite request"
    assert str(with_reason) == "No workflow_id received from initial check request: bad"


def test_validation_error_from_pydantic():
    with pytest.raises(pydantic.ValidationError) as excinfo:
        AnalysisRequest.model_validate({"content": "", "guidance": {"style_guide": "ap"}})

    error = ValidationError.from_pydantic(excinfo.value, "rewrite request")

    assert error.kind is ErrorKind.validation
    assert error.message.startswith("Invalid rewrite request: content:")
    assert not error.is_api_error
