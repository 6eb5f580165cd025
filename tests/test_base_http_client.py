from __future__ import annotations

from typing import Optional

import pytest
import requests

import recall.clients.base as base
from recall.clients.base import (
    BaseHttpClient,
    RateLimitedError,
    RequestRejectedError,
    RetryableResponseError,
    UnauthorizedError,
    UpstreamError,
)


class _Outcome:
    def __init__(self, exception: Exception):
        self.failed = True
        self._exception = exception

    def exception(self) -> Exception:
        return self._exception


class _RetryState:
    def __init__(self, attempt_number: int, outcome: Optional[_Outcome]):
        self.attempt_number = attempt_number
        self.outcome = outcome


def _make_response(status: int, body: str = "", headers: Optional[dict[str, str]] = None):
    response = requests.Response()
    response.status_code = status
    response._content = body.encode()
    response.url = "https://example.test/resource"
    response.headers.update(headers or {})
    response.encoding = "utf-8"
    return response


def test_retry_wait_respects_retry_after_header():
    response = _make_response(429, headers={"Retry-After": "5"})
    retry_state = _RetryState(1, _Outcome(RetryableResponseError(response)))

    assert base._retry_wait(retry_state) == 5


def test_retry_wait_falls_back_to_exponential_backoff():
    retry_state = _RetryState(1, _Outcome(requests.ConnectionError("reset")))

    assert 0.5 <= base._retry_wait(retry_state) <= 8


def test_parse_retry_after_variants():
    assert base._parse_retry_after(None) is None
    assert base._parse_retry_after("12") == 12.0
    assert base._parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0
    assert base._parse_retry_after("soon") is None


def test_handle_response_maps_status_codes():
    client = BaseHttpClient()

    with pytest.raises(RateLimitedError) as rate_limited:
        client._handle_response(_make_response(429, headers={"Retry-After": "3"}))
    assert rate_limited.value.retry_after == 3.0

    with pytest.raises(UnauthorizedError):
        client._handle_response(_make_response(401))

    with pytest.raises(RequestRejectedError) as rejected:
        client._handle_response(_make_response(422, body="bad   input\nhere"))
    assert rejected.value.status == 422
    assert rejected.value.body_excerpt == "bad input here"

    with pytest.raises(UpstreamError, match="Upstream service error: boom"):
        client._handle_response(_make_response(502, body="boom"))

    ok = _make_response(200, body="{}")
    assert client._handle_response(ok) is ok


def test_default_headers_applied_without_overriding_session():
    client = BaseHttpClient()
    assert client.session.headers["User-Agent"] == "session-recall"

    session = requests.Session()
    session.headers["Accept"] = "text/plain"
    client = BaseHttpClient(session=session)
    assert client.session.headers["Accept"] == "text/plain"
