"""Release creator: turns a version tag into a published release."""

from __future__ import annotations

from relorch.core.result import Err, Ok, Result
from relorch.release.errors import InvalidTag, ReleaseCreateFailed
from relorch.release.github import ReleasePlatform
from relorch.release.model import ReleaseHandle, ReleaseRecord

_TAG_REF_PREFIX = "refs/tags/"


def normalize_tag(raw: str) -> Result[str, InvalidTag]:
    """Accept ``v1.2.0`` or the ``refs/tags/v1.2.0`` form CI reports for tag pushes."""
    tag = raw.strip()
    if tag.startswith(_TAG_REF_PREFIX):
        tag = tag[len(_TAG_REF_PREFIX) :]
    if not tag:
        return Err(InvalidTag(tag=raw, reason="tag is empty"))
    if any(c.isspace() or ord(c) < 0x20 for c in tag):
        return Err(InvalidTag(tag=raw, reason="tag contains whitespace or control characters"))
    return Ok(tag)


def release_title(tag: str) -> str:
    return f"Release {tag}"


def create_release(
    *,
    tag: str,
    run_id: str,
    platform: ReleasePlatform,
) -> Result[tuple[ReleaseRecord, ReleaseHandle], InvalidTag | ReleaseCreateFailed]:
    """Create the run's release and return it with the handle build tasks need.

    Draft and prerelease are always off. Failures are returned unchanged and
    never retried here.
    """
    normalized = normalize_tag(tag)
    if isinstance(normalized, Err):
        return normalized
    tag = normalized.value

    title = release_title(tag)
    created = platform.create_release(tag=tag, title=title, draft=False, prerelease=False)
    if isinstance(created, Err):
        return Err(ReleaseCreateFailed(tag=tag, cause=created.error))

    c = created.value
    record = ReleaseRecord(id=c.id, tag=tag, title=title, html_url=c.html_url)
    handle = ReleaseHandle(run_id=run_id, release_id=c.id, upload_url=c.upload_url)
    return Ok((record, handle))
