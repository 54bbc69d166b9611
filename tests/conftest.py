"""Shared fixtures: an in-memory source standing in for the live store."""

import pytest

from src.routine_sync.config import RoutineSyncConfig
from src.routine_sync.controller import SelectionController
from src.routine_sync.sources import InMemoryScheduleSource


def make_config(**overrides) -> RoutineSyncConfig:
    overrides.setdefault("subscribe_retry_wait_seconds", 0)
    return RoutineSyncConfig(_env_file=None, **overrides)


@pytest.fixture
def config() -> RoutineSyncConfig:
    return make_config()


@pytest.fixture
def source() -> InMemoryScheduleSource:
    src = InMemoryScheduleSource()
    src.set_entity("10A", name="Class 10A")
    src.set_entity("10B", name="Class 10B")
    return src


@pytest.fixture
def deferred_source() -> InMemoryScheduleSource:
    """Deliveries queue until flush(), so callbacks can arrive late."""
    src = InMemoryScheduleSource(deliver_immediately=False)
    src.set_entity("10A", name="Class 10A")
    src.set_entity("10B", name="Class 10B")
    return src


@pytest.fixture
def controller(source, config):
    ctrl = SelectionController.from_source(source, config)
    ctrl.start()
    yield ctrl
    ctrl.close()
