"""Shared-secret verification for internal and scheduled endpoints."""

import hmac

from careops.core.config import settings


class UnauthorizedError(Exception):
    """Caller did not present the expected credential."""


def verify_secret(provided: str | None, expected: str | None) -> bool:
    """Constant-time comparison. Empty or missing values never match."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def parse_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an "Authorization: Bearer <token>" header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def verify_cron_authorization(authorization: str | None) -> None:
    """
    Check the cron caller's bearer credential against CRON_SECRET.

    Fails closed: an unset CRON_SECRET rejects every caller.

    Raises:
        UnauthorizedError: Missing, malformed or wrong credential.
    """
    token = parse_bearer_token(authorization)
    if token is None:
        raise UnauthorizedError("Missing bearer token")
    if not verify_secret(token, settings.CRON_SECRET):
        raise UnauthorizedError("Invalid cron secret")
