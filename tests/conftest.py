from __future__ import annotations

import pytest

from fleet_telemetry_service.main import create_app
from fleet_telemetry_service.repositories.memory import InMemoryRobotRepository, InMemoryTelemetryRepository
from fleet_telemetry_service.services.dependencies import ROBOT_REPOSITORY
from fleet_telemetry_service.services.latest_cache import TTLCache
from fleet_telemetry_service.services.telemetry import TelemetryService
from fleet_telemetry_service.settings import Settings

from tests.utils import FOREIGN_ROBOT_ID, ORG_ID, OTHER_ORG_ID, ROBOT_ID, SECOND_ROBOT_ID


@pytest.fixture
def test_settings() -> Settings:
    return Settings(storage_backend="memory", env="test")


@pytest.fixture
def robots() -> InMemoryRobotRepository:
    repo = InMemoryRobotRepository()
    repo.register(ROBOT_ID, ORG_ID)
    repo.register(SECOND_ROBOT_ID, ORG_ID)
    repo.register(FOREIGN_ROBOT_ID, OTHER_ORG_ID)
    return repo


@pytest.fixture
def store(robots: InMemoryRobotRepository) -> InMemoryTelemetryRepository:
    return InMemoryTelemetryRepository(robots)


@pytest.fixture
def cache() -> TTLCache:
    return TTLCache()


@pytest.fixture
def telemetry_service(store, robots, cache, test_settings) -> TelemetryService:
    return TelemetryService(store, robots, cache, config=test_settings)


@pytest.fixture
async def service_client(aiohttp_client, test_settings):
    app = create_app(test_settings)
    registry = app[ROBOT_REPOSITORY]
    registry.register(ROBOT_ID, ORG_ID)
    registry.register(SECOND_ROBOT_ID, ORG_ID)
    registry.register(FOREIGN_ROBOT_ID, OTHER_ORG_ID)
    return await aiohttp_client(app)
