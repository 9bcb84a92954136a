"""
Configuración de pytest y fixtures compartidas.
"""

import pytest

from rentmatch.config import Settings, get_settings
from rentmatch.database import (
    MatchScoreRepository,
    PreferencesRepository,
    PropertyRepository,
    get_supabase_client,
)
from rentmatch.matching import MatchScoreService

from tests.builders import make_preferences, make_property
from tests.fakes import FakeSupabaseClient


@pytest.fixture(autouse=True)
def supabase_env(monkeypatch):
    """Credenciales falsas para que Settings valide sin .env."""
    monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test-anon-key")
    monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)
    get_settings.cache_clear()
    get_supabase_client.cache_clear()
    yield
    get_settings.cache_clear()
    get_supabase_client.cache_clear()


@pytest.fixture
def settings():
    return Settings(request_timeout_seconds=2.0, store_retry_attempts=1)


@pytest.fixture
def fake_db():
    return FakeSupabaseClient(
        {
            "properties": [make_property(f"prop-{i}") for i in range(1, 6)],
            "user_preferences": [make_preferences()],
            "match_scores": [],
        }
    )


@pytest.fixture
def service(fake_db, settings):
    return MatchScoreService(
        store=MatchScoreRepository(client=fake_db),
        properties=PropertyRepository(client=fake_db),
        preferences=PreferencesRepository(client=fake_db),
        settings=settings,
    )
