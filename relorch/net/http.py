"""HTTP client abstraction for the release platform API.

This module provides:
- HttpClient: Protocol for JSON-over-HTTP calls (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation that records every request
"""

from __future__ import annotations

import http.client
import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from relorch import __version__
from relorch.core.result import Err, Ok, Result
from relorch.core.structured import StrDict, as_str_dict, get_str

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpRequest",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message (API message when available)
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class HttpRequest:
    method: str
    url: str
    headers: Mapping[str, str]
    body: bytes | None


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP calls that answer with a JSON object."""

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> Result[StrDict, HttpError]:
        """Send a request and parse the response body as a JSON object.

        Args:
            method: HTTP verb
            url: Full URL
            headers: Request headers (auth, content type)
            body: Raw request body, sent unchanged
            timeout: Seconds before giving up (client default if None)

        Returns:
            Ok with the parsed object, or Err with HttpError
        """
        ...


def _error_body(error: urllib.error.HTTPError) -> bytes:
    try:
        return error.read()
    except (OSError, http.client.HTTPException):
        return b""


def _api_message(raw: bytes, fallback: str) -> str:
    # GitHub error bodies look like {"message": "...", "errors": [...]}.
    try:
        obj: object = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return fallback
    data = as_str_dict(obj)
    if data is None:
        return fallback
    return get_str(data, "message") or fallback


class RealHttpClient:
    """Real HTTP client using urllib with system certificates."""

    def __init__(self, timeout: float = 60.0, user_agent: str = f"relorch/{__version__}") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> Result[StrDict, HttpError]:
        req = urllib.request.Request(
            url,
            data=body,
            method=method,
            headers={"User-Agent": self.user_agent, **headers},
        )
        try:
            with urllib.request.urlopen(
                req,
                timeout=timeout if timeout is not None else self.timeout,
                context=self._ssl_context,
            ) as response:
                raw: bytes = response.read()
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=_api_message(_error_body(e), e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except http.client.HTTPException as e:
            # Connection dropped mid-response (IncompleteRead, RemoteDisconnected, ...).
            return Err(HttpError(url=url, status=0, message=f"{type(e).__name__}: {e}"))

        try:
            data = as_str_dict(json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))
        if data is None:
            return Err(HttpError(url=url, status=0, message="Expected JSON object"))
        return Ok(data)


def _no_requests() -> list[HttpRequest]:
    return []


def _no_responses() -> dict[tuple[str, str], StrDict | HttpError]:
    return {}


@dataclass
class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are keyed by (method, url). Unknown requests answer 404.

    Usage:
        client = MockHttpClient()
        client.set_json("POST", "https://api.example.com/releases", {"id": 1})
        result = client.request_json("POST", "https://api.example.com/releases", headers={})
        assert result == Ok({"id": 1})
    """

    requests: list[HttpRequest] = field(default_factory=_no_requests)
    _responses: dict[tuple[str, str], StrDict | HttpError] = field(default_factory=_no_responses)

    def set_json(self, method: str, url: str, response: StrDict | HttpError) -> None:
        self._responses[(method, url)] = response

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> Result[StrDict, HttpError]:
        self.requests.append(HttpRequest(method=method, url=url, headers=dict(headers), body=body))

        response = self._responses.get((method, url))
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not Found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)
