"""
Tests for settings validation.
"""

import pytest
from pydantic import ValidationError

from faceauth.clients import create_database_manager
from faceauth.clients.memory_store import InMemoryClient
from faceauth.clients.supabase_client import SupabaseClient
from faceauth.config import Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_defaults():
    settings = make_settings()

    assert settings.store_backend == "memory"
    assert settings.descriptor_dimension == 128
    assert settings.match_threshold == 0.6
    assert settings.normalize_descriptors is False
    assert settings.enrollment_steps == 5
    assert settings.enrollment_enforce_order is False
    assert settings.session_ttl_seconds == 24 * 3600
    assert settings.session_cookie_name == "session"


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("MATCH_THRESHOLD", "0.45")
    monkeypatch.setenv("NORMALIZE_DESCRIPTORS", "true")
    monkeypatch.setenv("SESSION_TTL_HOURS", "1.5")

    settings = make_settings()

    assert settings.match_threshold == 0.45
    assert settings.normalize_descriptors is True
    assert settings.session_ttl_seconds == 5400


@pytest.mark.parametrize(
    "overrides",
    [
        {"store_backend": "mongodb"},
        {"match_threshold": 0.0},
        {"session_ttl_hours": -1},
        {"descriptor_dimension": 0},
        {"enrollment_steps": 0},
        {"session_sweep_interval_seconds": -5},
        {"log_level": "verbose"},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(ValidationError):
        make_settings(**overrides)


def test_store_backend_is_case_insensitive():
    assert make_settings(store_backend="MEMORY").store_backend == "memory"


def test_supabase_requires_credentials():
    with pytest.raises(ValidationError, match="SUPABASE_URL"):
        make_settings(store_backend="supabase")

    with pytest.raises(ValidationError, match="SUPABASE_KEY"):
        make_settings(store_backend="supabase", supabase_url="https://example.supabase.co")


def test_backend_selection():
    memory = create_database_manager(make_settings())
    supabase = create_database_manager(
        make_settings(store_backend="supabase", supabase_url="https://example.supabase.co", supabase_key="key")
    )

    assert isinstance(memory.client, InMemoryClient)
    assert isinstance(supabase.client, SupabaseClient)
