import httpx
import pytest

from conftest import FakeAPIError, quota_error
from portal_chat.classifier import (
    GENERIC_ERROR_MESSAGE,
    classify_error,
    is_rate_limited,
    to_provider_error,
)
from portal_chat.errors import (
    ErrorKind,
    MisconfiguredError,
    NotFoundError,
    PortalError,
    ProviderFailedError,
    ProviderUnavailableError,
    RateLimitedError,
    UpstreamError,
    ValidationError,
)


def test_typed_rate_limit_maps_to_429():
    result = classify_error(RateLimitedError("gemini", 32000))
    assert result.status_code == 429
    assert result.body == {
        "message": "Rate limit exceeded. Please try again in 32s.",
        "retryAfterMs": 32000,
        "type": "RATE_LIMIT",
    }


def test_raw_429_uses_parsed_delay():
    result = classify_error(quota_error("4.2s"))
    assert result.status_code == 429
    assert result.body["retryAfterMs"] == 4200
    assert result.body["message"].endswith("in 5s.")


@pytest.mark.parametrize(
    "err",
    [
        FakeAPIError(429, "quota"),
        RuntimeError("HTTP 429 Too Many Requests"),
        RuntimeError("Rate limit reached for requests"),
    ],
)
def test_raw_rate_limits_default_to_five_seconds(err):
    result = classify_error(err)
    assert result.status_code == 429
    assert result.body["retryAfterMs"] == 5000
    assert result.body["type"] == "RATE_LIMIT"


@pytest.mark.parametrize(
    "err,status",
    [
        (ValidationError("Message required"), 400),
        (NotFoundError("No exam folders found for this roll number"), 404),
        (UpstreamError("rollNo is required", status_code=400), 400),
        (UpstreamError("Failed to load exam folders", status_code=502), 502),
    ],
)
def test_client_facing_errors_keep_status_and_message(err, status):
    result = classify_error(err)
    assert result.status_code == status
    assert result.body == {"message": err.message}


def test_misconfigured_is_server_error():
    result = classify_error(MisconfiguredError("Server misconfigured: no generation provider available"))
    assert result.status_code == 500
    assert result.body["type"] == "SERVER_ERROR"
    assert "misconfigured" in result.body["message"]


def test_raw_errors_do_not_leak_internals():
    result = classify_error(RuntimeError("db password=hunter2 rejected"))
    assert result.status_code == 500
    assert result.body == {"message": GENERIC_ERROR_MESSAGE, "type": "SERVER_ERROR"}


def test_to_response_builds_json_response():
    response = classify_error(NotFoundError("Folder not found")).to_response()
    assert response.status_code == 404
    assert response.body == b'{"message":"Folder not found"}'


def test_to_provider_error_rate_limit_carries_delay():
    err = to_provider_error(quota_error("32s"), "gemini")
    assert isinstance(err, RateLimitedError)
    assert err.kind is ErrorKind.RATE_LIMITED
    assert err.retry_after_ms == 32000
    assert err.provider == "gemini"


def test_to_provider_error_rate_limit_without_details_uses_default():
    err = to_provider_error(FakeAPIError(429, "slow down"), "gemini")
    assert isinstance(err, RateLimitedError)
    assert err.retry_after_ms == 5000


@pytest.mark.parametrize(
    "raw",
    [
        FakeAPIError(503, "The model is overloaded. Please try again later.", "UNAVAILABLE"),
        FakeAPIError(500, "Internal error", "INTERNAL"),
        httpx.ConnectTimeout("timed out"),
        TimeoutError(),
        RuntimeError("service unavailable"),
    ],
)
def test_to_provider_error_transient(raw):
    assert isinstance(to_provider_error(raw, "gemini"), ProviderUnavailableError)


def test_to_provider_error_other_failures():
    err = to_provider_error(FakeAPIError(400, "API key not valid", "INVALID_ARGUMENT"), "gemini")
    assert isinstance(err, ProviderFailedError)
    assert "API key" not in err.message


def test_to_provider_error_passes_typed_errors_through():
    original = NotFoundError("x")
    assert to_provider_error(original, "gemini") is original


def test_rate_limit_detected_through_wrapping():
    try:
        try:
            raise FakeAPIError(429, "quota")
        except FakeAPIError as inner:
            raise PortalError("wrapped") from inner
    except PortalError as outer:
        assert is_rate_limited(outer)
