import pytest

from careops.core.config import settings
from careops.core.security import (
    UnauthorizedError,
    parse_bearer_token,
    verify_cron_authorization,
    verify_secret,
)


def test_verify_secret():
    assert verify_secret("abc", "abc") is True
    assert verify_secret("abc", "abd") is False
    assert verify_secret("", "") is False
    assert verify_secret(None, "abc") is False
    assert verify_secret("abc", None) is False


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer token-1", "token-1"),
        ("bearer token-1", "token-1"),
        ("  Bearer   token-1  ", "token-1"),
        ("Basic token-1", None),
        ("token-1", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_bearer_token(header, expected):
    assert parse_bearer_token(header) == expected


def test_verify_cron_authorization_accepts_matching_secret(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    verify_cron_authorization("Bearer s3cret")


def test_verify_cron_authorization_rejects(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")
    with pytest.raises(UnauthorizedError):
        verify_cron_authorization(None)
    with pytest.raises(UnauthorizedError):
        verify_cron_authorization("Bearer wrong")


def test_unset_secret_fails_closed(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "")
    with pytest.raises(UnauthorizedError):
        verify_cron_authorization("Bearer ")
    with pytest.raises(UnauthorizedError):
        verify_cron_authorization("Bearer anything")
