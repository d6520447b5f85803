"""Tests for the error taxonomy and sanitize_error."""

import pytest

from scribe_chat.core.exceptions import (
    ConfigError,
    CRMProviderError,
    NotFoundError,
    ResponseParseError,
    ScribeChatError,
    TransportError,
    sanitize_error,
)


@pytest.mark.parametrize(
    ("error", "category", "status_code"),
    [
        (NotFoundError("Contact", 4), "not_found", 404),
        (CRMProviderError("hubspot", status=500), "provider_error", 502),
        (ConfigError("Anthropic API key is missing"), "config_error", 500),
        (TransportError("down", status=503), "transport_error", 503),
        (TransportError("bad gateway", status=502), "transport_error", 502),
        (ResponseParseError(), "parse_error", 502),
    ],
)
def test_categories_and_status_codes(error, category, status_code):
    assert isinstance(error, ScribeChatError)
    assert error.category == category
    assert error.status_code == status_code


def test_config_error_message():
    assert str(ConfigError("Anthropic API key is missing")) == (
        "Configuration error: Anthropic API key is missing"
    )


@pytest.mark.parametrize(
    ("status", "fragment"),
    [
        (429, "too many requests"),
        (503, "temporarily unavailable"),
        (None, "Unable to connect"),
        (500, "Something went wrong"),
    ],
)
def test_transport_error_user_messages(status, fragment):
    assert fragment in sanitize_error(TransportError("x", status=status))


def test_sanitize_error_hides_internal_details():
    not_found = sanitize_error(NotFoundError("Chat thread", 12))
    unexpected = sanitize_error(RuntimeError("password=hunter2"))

    assert not_found == "The requested resource was not found."
    assert unexpected == "An error occurred. Please try again."


def test_not_found_details():
    error = NotFoundError("Chat thread", 12)

    assert error.message == "Chat thread with ID '12' not found"
    assert error.details == {"resource": "Chat thread", "resource_id": 12}
