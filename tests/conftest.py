# =============================================================================
# Shared Fixtures
# =============================================================================
# Fresh fakes per test; see fakes.py for what they support.
# =============================================================================

import pytest

from fakes import FakeCacheStore, FakeDocumentStore, UnreachableCacheStore


@pytest.fixture
def document_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def cache_store() -> FakeCacheStore:
    return FakeCacheStore()


@pytest.fixture
def unreachable_cache_store() -> UnreachableCacheStore:
    return UnreachableCacheStore()
