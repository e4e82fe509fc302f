"""
Shared pytest fixtures and configuration for spine-orm tests.

This module provides:
- Model definitions used across the suite (``user`` / ``pet``)
- An in-memory reference adapter and an initialized ``Orm`` bound to it
- Structlog reset between tests, so ``capture_logs`` always sees events

Usage:
    Fixtures are auto-discovered by pytest. Simply use them as function
    arguments (pytest injects them automatically).

    @pytest.mark.asyncio
    async def test_something(users, adapter):
        ...
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure spine_orm and tests._support are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from spine_orm import Datastore, ModelRegistry, Orm
from spine_orm.context import OperationContext
from spine_orm.omen import Omen
from tests._support import MemoryAdapter
from tests._support.models import pet_definition, user_definition


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark all tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Logging isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore structlog's default configuration after each test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Models
# =============================================================================


@pytest.fixture
def adapter() -> MemoryAdapter:
    """In-memory adapter with a unique constraint on ``users.email_address``."""
    return MemoryAdapter(unique={"users": ("email_address",)})


@pytest.fixture
def orm(adapter: MemoryAdapter) -> Orm:
    return Orm.initialize(
        models=[user_definition(), pet_definition()],
        datastores=[Datastore("default", adapter)],
    )


@pytest.fixture
def registry(orm: Orm) -> ModelRegistry:
    return orm.registry


@pytest.fixture
def users(orm: Orm):
    return orm.model("user")


@pytest.fixture
def pets(orm: Orm):
    return orm.model("pet")


@pytest.fixture
def seeded(adapter: MemoryAdapter) -> MemoryAdapter:
    """Three users, two of them with pets."""
    adapter.seed(
        "users",
        [
            {"id": 1, "name": "ada", "email_address": "ada@example.com", "age": 36},
            {"id": 2, "name": "bob", "email_address": "bob@example.com", "age": 25},
            {"id": 3, "name": "cy", "email_address": "cy@example.com", "age": 52},
        ],
    )
    adapter.seed(
        "pets",
        [
            {"id": 10, "name": "rex", "species": "dog", "owner_id": 1},
            {"id": 11, "name": "tom", "species": "cat", "owner_id": 1},
            {"id": 12, "name": "kit", "species": "cat", "owner_id": 2},
            {"id": 13, "name": "stray", "species": "cat", "owner_id": None},
        ],
    )
    return adapter


@pytest.fixture
def make_context(registry: ModelRegistry):
    """Build an ``OperationContext`` for calling operation functions directly."""

    def _make(identity: str = "user") -> OperationContext:
        return OperationContext(registry=registry, identity=identity, omen=Omen.capture())

    return _make
