"""Retrying HTTP base for the embedding and chat completion clients."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import requests
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": "session-recall",
    "Accept": "application/json",
}

# Model endpoints answer 503 while a model is loading and 429 when throttled.
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
MAX_ATTEMPTS = 3
EXCERPT_LENGTH = 200


class ClientError(Exception):
    """Base exception for failed calls to an external model service."""


class RateLimitedError(ClientError):
    """HTTP 429 that persisted through every retry."""

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class RequestRejectedError(ClientError):
    """A 4xx answer: the request itself is wrong and retrying will not help."""

    def __init__(self, status: int, message: str, body_excerpt: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.body_excerpt = body_excerpt


class UnauthorizedError(RequestRejectedError):
    """HTTP 401/403, usually a missing or revoked API token."""


class UpstreamError(ClientError):
    """The service failed (5xx or network error) after retries."""


class RetryableResponseError(Exception):
    """Carries a transient response through tenacity so it can be retried."""

    def __init__(self, response: requests.Response):
        super().__init__(f"Transient HTTP {response.status_code}")
        self.response = response


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds to wait from a ``Retry-After`` header (delta or HTTP date)."""

    if not value:
        return None
    if value.isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


_backoff = wait_exponential(multiplier=0.5, min=0.5, max=8)


def _retry_wait(retry_state: RetryCallState) -> float:
    outcome = retry_state.outcome
    if outcome is not None and outcome.failed:
        exc = outcome.exception()
        if isinstance(exc, RetryableResponseError):
            delay = _parse_retry_after(exc.response.headers.get("Retry-After"))
            if delay is not None:
                return delay
    return _backoff(retry_state)


def _excerpt(response: requests.Response) -> Optional[str]:
    try:
        text = response.text
    except Exception:
        return None
    return " ".join(text.split())[:EXCERPT_LENGTH] or None


class BaseHttpClient:
    """Shared session, timeout, retry and status handling.

    Subclasses set ``BASE_URL`` and ``SERVICE_NAME`` and call :meth:`_request`.
    """

    BASE_URL = ""
    SERVICE_NAME = "Upstream service"

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        if session is None:
            session = requests.Session()
            session.headers.update(DEFAULT_HEADERS)
        else:
            for key, value in DEFAULT_HEADERS.items():
                session.headers.setdefault(key, value)
        self.session = session
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout

    @retry(
        reraise=True,
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=_retry_wait,
        retry=retry_if_exception_type((requests.RequestException, RetryableResponseError)),
    )
    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if response.status_code in TRANSIENT_STATUS_CODES:
            logger.debug("%s answered %d, retrying", self.SERVICE_NAME, response.status_code)
            raise RetryableResponseError(response)
        return response

    def _request(
        self,
        method: str,
        path: str = "",
        *,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        try:
            response = self._send(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except RetryableResponseError as exc:
            response = exc.response
        except requests.RequestException as exc:  # pragma: no cover - network dependent
            raise UpstreamError(f"{self.SERVICE_NAME} request failed: {exc}") from exc
        return self._handle_response(response)

    def _handle_response(self, response: requests.Response) -> requests.Response:
        status = response.status_code
        if status < 400:
            return response

        if status == 429:
            raise RateLimitedError(
                f"{self.SERVICE_NAME} rate limit exceeded",
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )

        excerpt = _excerpt(response)
        detail = f": {excerpt}" if excerpt else ""
        if status >= 500:
            raise UpstreamError(f"{self.SERVICE_NAME} error{detail} ({status})")
        if status in (401, 403):
            raise UnauthorizedError(
                status, f"{self.SERVICE_NAME} rejected the credentials ({status})", excerpt
            )
        raise RequestRejectedError(
            status, f"{self.SERVICE_NAME} rejected the request{detail} ({status})", excerpt
        )
