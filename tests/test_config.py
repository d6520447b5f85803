"""Tests for settings validation and the Supabase client singleton."""

from unittest.mock import MagicMock, patch

import pytest
from pydantic import SecretStr

from scribe_chat.core.config import Settings
from scribe_chat.core.exceptions import DatabaseError
from scribe_chat.db.supabase import SupabaseClient, get_supabase_client


def _settings(**overrides) -> Settings:
    values = {
        "SUPABASE_URL": "https://example.supabase.co/",
        "SUPABASE_SERVICE_ROLE_KEY": SecretStr("service-key"),
        "ANTHROPIC_API_KEY": SecretStr(""),
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_urls_lose_trailing_slash(self):
        assert _settings().SUPABASE_URL == "https://example.supabase.co"

    def test_cors_origins_split_and_trimmed(self):
        s = _settings(CORS_ORIGINS=" http://a.test , ,http://b.test")
        assert s.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_transport_defaults(self):
        s = _settings()
        assert s.LLM_TIMEOUT_SECONDS == 30.0
        assert s.LLM_MAX_RETRIES == 1
        assert s.CHAT_MAX_MEETINGS == 10
        assert s.CHAT_MAX_NAME_MATCHED_MEETINGS == 5

    def test_validate_startup_requires_supabase_secrets(self):
        s = _settings(SUPABASE_SERVICE_ROLE_KEY=SecretStr(""))
        with pytest.raises(ValueError, match="SUPABASE_SERVICE_ROLE_KEY"):
            s.validate_startup()

    def test_validate_startup_tolerates_missing_model_key(self):
        s = _settings()
        assert s.llm_configured is False
        s.validate_startup()


class TestSupabaseClient:
    def setup_method(self):
        SupabaseClient.reset_client()

    def teardown_method(self):
        SupabaseClient.reset_client()

    def test_client_created_once(self):
        client = MagicMock()
        with patch("scribe_chat.db.supabase.create_client", return_value=client) as create:
            assert get_supabase_client() is client
            assert get_supabase_client() is client
        create.assert_called_once()

    def test_init_failure_raises_database_error(self):
        with (
            patch("scribe_chat.db.supabase.create_client", side_effect=RuntimeError("bad url")),
            pytest.raises(DatabaseError),
        ):
            SupabaseClient.get_client()
