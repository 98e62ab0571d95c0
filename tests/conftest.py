"""Shared fixtures for behavior engine tests."""

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_engine
from app.main import app
from app.services.behavior_engine import BehaviorEngine
from app.services.behavior_engine.store import InMemoryStore

from helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(store, clock):
    return BehaviorEngine(store, clock=clock)


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()
