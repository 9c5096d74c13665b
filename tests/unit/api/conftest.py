"""Fixtures for route tests: a bare app wired to the in-memory registry."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from campusreg.api.app import install_exception_handlers
from campusreg.api.dependencies import get_registration_service, get_registry, get_statistics
from campusreg.api.routes import catalog, registrations, semesters
from campusreg.registration import RegistrationService, StatisticsAggregator
from campusreg.registry import Registry

STUDENT = {"X-User-Id": "user-1", "X-User-Role": "student"}
OTHER_STUDENT = {"X-User-Id": "user-2", "X-User-Role": "student"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
CLINIC = {"X-User-Id": "clinic-1", "X-User-Role": "clinic"}


@pytest.fixture
def app(registry: Registry, service: RegistrationService, statistics: StatisticsAggregator):
    """Create a test FastAPI app with mocked dependencies."""
    app = FastAPI()

    # Override dependencies
    def override_get_registry():
        yield registry

    def override_get_registration_service():
        yield service

    def override_get_statistics():
        yield statistics

    app.dependency_overrides[get_registry] = override_get_registry
    app.dependency_overrides[get_registration_service] = override_get_registration_service
    app.dependency_overrides[get_statistics] = override_get_statistics

    install_exception_handlers(app)

    # Include routes
    app.include_router(registrations.router, prefix="/api/v1")
    app.include_router(semesters.router, prefix="/api/v1")
    app.include_router(catalog.router, prefix="/api/v1")

    return app


@pytest.fixture
def client(app: FastAPI):
    """Create a test client."""
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def student_headers() -> dict[str, str]:
    return dict(STUDENT)


@pytest.fixture
def other_student_headers() -> dict[str, str]:
    return dict(OTHER_STUDENT)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN)


@pytest.fixture
def clinic_headers() -> dict[str, str]:
    return dict(CLINIC)
