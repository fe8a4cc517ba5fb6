from __future__ import annotations

# GitHub API calls (create release)
GH_TIMEOUT_SECONDS = 60.0

# Asset uploads stream whole binaries
GH_UPLOAD_TIMEOUT_SECONDS = 10 * 60.0

# Toolchain build step, per target
BUILD_TIMEOUT_SECONDS = 30 * 60.0

# How long a build task waits for the release handle
HANDOFF_FETCH_TIMEOUT_SECONDS = 30.0

# File-backed handoff polling
HANDOFF_POLL_INTERVAL_SECONDS = 0.5
