"""Shared-secret bearer check for worker endpoints."""

import secrets
from typing import Optional

from webp_worker.errors import ConfigurationError, Unauthorized


def verify_bearer(authorization: Optional[str], worker_secret: Optional[str]) -> None:
    """Validate an Authorization header against the server's secret.

    Raises ConfigurationError when the server has no secret configured and
    Unauthorized when the header is missing or does not match.
    """
    if not worker_secret:
        raise ConfigurationError("WORKER_SECRET is not set in environment")

    expected = f"Bearer {worker_secret}"
    if not authorization or not secrets.compare_digest(
        authorization.encode("utf-8"), expected.encode("utf-8")
    ):
        raise Unauthorized("Missing or invalid bearer token")
