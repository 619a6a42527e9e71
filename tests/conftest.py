"""Pytest fixtures shared across the test suite."""

import pytest

from game_import.auth import TokenAuthorizer
from game_import.database import GameStore
from game_import.importing.fetcher import GameFetcher
from game_import.importing.orchestrator import ImportOrchestrator
from tests.fakes import FakeBGG, FakeExtractor, FakeScraper


@pytest.fixture
def store(tmp_path):
    return GameStore(tmp_path / "catalog.db")


@pytest.fixture
def admin_token(store):
    return TokenAuthorizer(store).issue_token("admin-1", admin=True)


@pytest.fixture
def auth_header(admin_token):
    return f"Bearer {admin_token}"


@pytest.fixture
def scraper():
    return FakeScraper()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def bgg():
    return FakeBGG()


@pytest.fixture
def delays():
    return []


@pytest.fixture
def make_orchestrator(store, scraper, extractor, bgg, delays):
    """Build an orchestrator over the fakes; keyword arguments replace individual collaborators."""

    def factory(**overrides):
        used_scraper = overrides.get("scraper", scraper)
        used_extractor = overrides.get("extractor", extractor)
        used_bgg = overrides.get("bgg", bgg)
        fetcher = GameFetcher(used_scraper, used_extractor, used_bgg, web_search=overrides.get("web_search"))
        return ImportOrchestrator(
            store,
            TokenAuthorizer(store),
            fetcher,
            used_bgg,
            delay=delays.append,
            enhance_delay=0.5,
        )

    return factory


@pytest.fixture
def orchestrator(make_orchestrator):
    return make_orchestrator()
