"""Release hosting platform: GitHub Releases over the REST API.

Only two calls are needed: create a release for a tag, and upload one
asset to the release's upload endpoint. Retries are left to the caller
(or to re-running the pipeline); this module reports failures as-is.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from relorch.core.result import Err, Ok, Result
from relorch.core.structured import StrDict, get_int, get_str
from relorch.net.http import HttpClient, HttpError
from relorch.output.console import ConsoleProtocol, Style
from relorch.release.errors import PlatformError, PlatformErrorKind
from relorch.release.model import UploadedAsset
from relorch.release.timeouts import GH_TIMEOUT_SECONDS, GH_UPLOAD_TIMEOUT_SECONDS

__all__ = [
    "CreatedRelease",
    "DryRunReleases",
    "GitHubReleases",
    "ReleasePlatform",
    "upload_endpoint",
]

_URI_TEMPLATE = re.compile(r"\{[^}]*\}$")


@dataclass(frozen=True, slots=True)
class CreatedRelease:
    id: str
    upload_url: str
    html_url: str | None = None


class ReleasePlatform(Protocol):
    def create_release(
        self,
        *,
        tag: str,
        title: str,
        draft: bool,
        prerelease: bool,
    ) -> Result[CreatedRelease, PlatformError]: ...

    def upload_asset(
        self,
        *,
        upload_url: str,
        path: Path,
        asset_name: str,
        content_type: str,
    ) -> Result[UploadedAsset, PlatformError]: ...


def upload_endpoint(upload_url: str, asset_name: str) -> str:
    """Turn the release's upload URL into the URL for one asset.

    GitHub hands out ``.../assets{?name,label}`` (an RFC 6570 template).
    """
    base = _URI_TEMPLATE.sub("", upload_url)
    return f"{base}?name={quote(asset_name, safe='')}"


def _classify(error: HttpError) -> PlatformErrorKind:
    if error.status in (401, 403):
        return "auth"
    if error.status == 404:
        return "not_found"
    if error.status == 422:
        # Validation failed: tag already has a release, or asset name taken.
        return "conflict"
    if error.status == 0 or error.status >= 500:
        return "network"
    return "rejected"


def _platform_error(error: HttpError) -> PlatformError:
    return PlatformError(kind=_classify(error), message=str(error), status=error.status)


class GitHubReleases:
    """GitHub implementation of ReleasePlatform."""

    def __init__(
        self,
        *,
        http: HttpClient,
        repo: str,
        token: str | None,
        api_url: str = "https://api.github.com",
    ) -> None:
        self._http = http
        self._repo = repo
        self._token = token
        self._api_url = api_url.rstrip("/")

    def _headers(self, extra: dict[str, str]) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        headers.update(extra)
        return headers

    def _require_token(self) -> Result[None, PlatformError]:
        if not self._token:
            return Err(PlatformError(kind="auth", message="no GitHub token available"))
        return Ok(None)

    def create_release(
        self,
        *,
        tag: str,
        title: str,
        draft: bool,
        prerelease: bool,
    ) -> Result[CreatedRelease, PlatformError]:
        auth = self._require_token()
        if isinstance(auth, Err):
            return auth

        payload = {"tag_name": tag, "name": title, "draft": draft, "prerelease": prerelease}
        result = self._http.request_json(
            "POST",
            f"{self._api_url}/repos/{self._repo}/releases",
            headers=self._headers({"Content-Type": "application/json"}),
            body=json.dumps(payload).encode("utf-8"),
            timeout=GH_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(_platform_error(result.error))

        return _parse_release(result.value)

    def upload_asset(
        self,
        *,
        upload_url: str,
        path: Path,
        asset_name: str,
        content_type: str,
    ) -> Result[UploadedAsset, PlatformError]:
        auth = self._require_token()
        if isinstance(auth, Err):
            return auth

        try:
            data = path.read_bytes()
        except OSError as e:
            return Err(PlatformError(kind="rejected", message=f"cannot read {path}: {e}"))

        result = self._http.request_json(
            "POST",
            upload_endpoint(upload_url, asset_name),
            headers=self._headers({"Content-Type": content_type, "Content-Length": str(len(data))}),
            body=data,
            timeout=GH_UPLOAD_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(_platform_error(result.error))

        payload = result.value
        return Ok(
            UploadedAsset(
                name=get_str(payload, "name") or asset_name,
                size=get_int(payload, "size") or len(data),
                url=get_str(payload, "browser_download_url"),
            )
        )


def _parse_release(payload: StrDict) -> Result[CreatedRelease, PlatformError]:
    release_id = get_int(payload, "id")
    upload_url = get_str(payload, "upload_url")
    if release_id is None or upload_url is None:
        return Err(
            PlatformError(
                kind="invalid_response",
                message="release payload is missing id or upload_url",
            )
        )
    return Ok(
        CreatedRelease(
            id=str(release_id),
            upload_url=upload_url,
            html_url=get_str(payload, "html_url"),
        )
    )


class DryRunReleases:
    """ReleasePlatform that only prints what it would do."""

    def __init__(self, *, repo: str, console: ConsoleProtocol) -> None:
        self._repo = repo
        self._console = console

    def create_release(
        self,
        *,
        tag: str,
        title: str,
        draft: bool,
        prerelease: bool,
    ) -> Result[CreatedRelease, PlatformError]:
        self._console.print(
            f"would create release {title!r} for {tag} in {self._repo} "
            f"(draft={draft}, prerelease={prerelease})",
            Style.DIM,
        )
        return Ok(CreatedRelease(id="dry-run", upload_url="(dry-run)"))

    def upload_asset(
        self,
        *,
        upload_url: str,
        path: Path,
        asset_name: str,
        content_type: str,
    ) -> Result[UploadedAsset, PlatformError]:
        self._console.print(f"would upload {path} as {asset_name} ({content_type})", Style.DIM)
        return Ok(UploadedAsset(name=asset_name, size=0))
