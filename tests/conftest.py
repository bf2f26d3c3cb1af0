"""Shared test fixtures and configuration."""

import os
from pathlib import Path
import sys

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
for path in (REPO_ROOT, SRC_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


# Complete test environment that overrides every config value
TEST_ENV = {
    "TRIGRAM_SEARCH_DB_PATH": ":memory:",
    "TRIGRAM_SEARCH_TRIGRAM_TABLE": "trigrams",
    "TRIGRAM_SEARCH_DEFAULT_LIMIT": "10",
    "TRIGRAM_SEARCH_DEFAULT_OFFSET": "0",
    "TRIGRAM_SEARCH_BATCH_SIZE": "100",
    "TRIGRAM_SEARCH_MULTI_ROW_INSERT": "auto",
    "TRIGRAM_SEARCH_MIN_MULTI_ROW_SQLITE_VERSION": "3.7.11",
    "TRIGRAM_SEARCH_BUSY_TIMEOUT_MS": "30000",
    "TRIGRAM_SEARCH_LOG_LEVEL": "info",
    "TRIGRAM_SEARCH_LOG_JSON": "true",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value

from trigram_search.adapters import (  # noqa: E402
    FakeTrigramIndex,
    InMemoryOwnerRepository,
    SqliteOwnerRepository,
    SqliteTrigramIndex,
)
from trigram_search.config import Settings  # noqa: E402
from trigram_search.service_layer import FuzzySearchable  # noqa: E402
from tests.fixtures.records import SURNAMES, Person  # noqa: E402


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset environment variables to test defaults before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def people() -> InMemoryOwnerRepository:
    return InMemoryOwnerRepository(
        "Person",
        [Person(id=owner_id, firstname="Bob", lastname=lastname) for owner_id, lastname in SURNAMES.items()],
    )


@pytest.fixture
def fake_index() -> FakeTrigramIndex:
    return FakeTrigramIndex()


@pytest.fixture
def sqlite_index():
    index = SqliteTrigramIndex(":memory:", "trigrams")
    yield index
    index.close()


@pytest.fixture
def sqlite_people(tmp_path):
    repository = SqliteOwnerRepository(Person, tmp_path / "people.db")
    yield repository
    repository.close()


@pytest.fixture(params=["fake", "sqlite"])
def index(request, fake_index, sqlite_index):
    """Run a test against both trigram index implementations."""
    return fake_index if request.param == "fake" else sqlite_index


@pytest.fixture
def searchable(people, index, settings) -> FuzzySearchable:
    searchable = FuzzySearchable(people, index, settings=settings)
    searchable.register("lastname", "firstname")
    searchable.bulk_update_fuzzy("lastname")
    searchable.bulk_update_fuzzy("firstname")
    return searchable
