"""
Tests for the JSON log formatter.
"""

import json
import logging

from studio_oauth.logging_config import JsonFormatter


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="studio_oauth.core.oauth_service",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="OAuth flow failed for %s",
        args=("discord",),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_format_basic_fields():
    """Test the standard fields are emitted as JSON."""
    data = json.loads(JsonFormatter().format(make_record()))

    assert data["severity"] == "WARNING"
    assert data["name"] == "studio_oauth.core.oauth_service"
    assert data["message"] == "OAuth flow failed for discord"
    assert "timestamp" in data
    assert "lineno" not in data


def test_format_includes_extra_fields():
    """Test fields passed with extra= reach the output."""
    record = make_record(provider="discord", error_kind="state_mismatch")

    data = json.loads(JsonFormatter().format(record))

    assert data["provider"] == "discord"
    assert data["error_kind"] == "state_mismatch"
