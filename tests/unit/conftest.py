from __future__ import annotations

import pytest

from settlement.storage.in_memory import InMemoryStorage
from settlement.validation.validator import get_schema_registry


@pytest.fixture
def store() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def registry():
    return get_schema_registry()
