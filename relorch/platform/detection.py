"""Host platform detection.

Build targets are named by platform id (``linux``, ``macos``, ``windows``).
On a CI runner the ``build`` command defaults to the target matching the
host it runs on.
"""

from __future__ import annotations

import sys as _sys

__all__ = ["host_platform"]


def host_platform(system: str | None = None) -> str | None:
    """Return the platform id for ``system`` (default: ``sys.platform``).

    Returns None for hosts that have no matching build target.
    """
    name = system if system is not None else _sys.platform
    if name.startswith("linux"):
        return "linux"
    if name == "darwin":
        return "macos"
    if name in ("win32", "cygwin"):
        return "windows"
    return None
