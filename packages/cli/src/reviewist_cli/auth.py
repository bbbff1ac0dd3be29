"""GitHub token resolution for the poller.

The notifications API needs a token with ``notifications`` scope.

Resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (deployments / explicit override)
  2. `gh auth token` (GitHub CLI session, handy when running locally)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token, or None if neither source has one.

    Never raises. Callers turn a missing token into a configuration error.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None

    if result.returncode == 0 and result.stdout.strip():
        logger.debug("Resolved GitHub token via gh CLI session.")
        return result.stdout.strip()
    return None
