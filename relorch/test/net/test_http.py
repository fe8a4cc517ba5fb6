"""Tests for relorch.net.http module."""

import http.client
import urllib.request

import pytest

from relorch.core.result import Err, Ok
from relorch.net.http import HttpClient, HttpError, MockHttpClient, RealHttpClient, _api_message


class TestHttpError:
    def test_str_with_status(self) -> None:
        err = HttpError(url="https://api.example/x", status=401, message="Bad credentials")
        assert str(err) == "HTTP 401: Bad credentials (https://api.example/x)"

    def test_str_network_error(self) -> None:
        err = HttpError(url="https://api.example/x", status=0, message="timed out")
        assert str(err) == "timed out (https://api.example/x)"


class TestApiMessage:
    def test_github_error_body(self) -> None:
        raw = b'{"message": "Validation Failed", "errors": [{"code": "already_exists"}]}'
        assert _api_message(raw, "Unprocessable Entity") == "Validation Failed"

    def test_non_json_body_falls_back(self) -> None:
        assert _api_message(b"<html>", "Bad Gateway") == "Bad Gateway"

    def test_json_without_message(self) -> None:
        assert _api_message(b"[1, 2]", "Bad Request") == "Bad Request"


class TestMockHttpClient:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)
        assert isinstance(RealHttpClient(), HttpClient)

    def test_configured_response(self) -> None:
        client = MockHttpClient()
        client.set_json("POST", "https://api.example/releases", {"id": 1})

        result = client.request_json("POST", "https://api.example/releases", headers={}, body=b"{}")

        assert result == Ok({"id": 1})
        assert client.requests[0].body == b"{}"

    def test_unknown_url_is_404(self) -> None:
        result = MockHttpClient().request_json("GET", "https://api.example/missing", headers={})
        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_configured_error(self) -> None:
        client = MockHttpClient()
        error = HttpError(url="u", status=500, message="oops")
        client.set_json("POST", "u", error)
        assert client.request_json("POST", "u", headers={}) == Err(error)

    def test_method_is_part_of_key(self) -> None:
        client = MockHttpClient()
        client.set_json("POST", "u", {"id": 1})
        assert isinstance(client.request_json("GET", "u", headers={}), Err)


class TestRealHttpClient:
    def test_truncated_response_is_an_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A connection dropped mid-body is reported, not raised."""

        class _Truncated:
            def __enter__(self) -> "_Truncated":
                return self

            def __exit__(self, *exc: object) -> None:
                return None

            def read(self) -> bytes:
                raise http.client.IncompleteRead(b'{"id": 1', 20)

        def fake_urlopen(*args: object, **kwargs: object) -> _Truncated:
            return _Truncated()

        monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

        result = RealHttpClient().request_json("POST", "https://api.example/releases", headers={})

        assert isinstance(result, Err)
        assert result.error.status == 0
        assert "IncompleteRead" in result.error.message
