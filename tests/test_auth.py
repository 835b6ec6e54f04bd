"""Tests for building the Gmail API client."""
from unittest.mock import patch, MagicMock

import pytest

from support_triage.auth import get_gmail_service, load_credentials


def test_gmail_service_http_has_timeout(tmp_path):
    """Every Gmail call, sends included, should be bounded by the configured timeout."""
    with patch("support_triage.auth.load_credentials", return_value=MagicMock()), \
            patch("support_triage.auth.build") as build:
        get_gmail_service(tmp_path, timeout=30)
    http = build.call_args[1]["http"]
    assert http.http.timeout == 30
    assert build.call_args[0] == ("gmail", "v1")


def test_missing_client_secret_raises(tmp_path):
    with pytest.raises(FileNotFoundError, match="client_secret.json"):
        load_credentials(tmp_path)


def test_valid_cached_token_is_reused(tmp_path):
    (tmp_path / "token.json").write_text("{}")
    creds = MagicMock(valid=True)
    with patch("support_triage.auth.Credentials.from_authorized_user_file", return_value=creds):
        assert load_credentials(tmp_path) is creds
