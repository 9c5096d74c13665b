"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Callable, Generator  # noqa: TC003
from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated

from fastapi import Depends, Header

from campusreg.api.exceptions import AuthenticationRequiredError, RoleNotAllowedError
from campusreg.config import Settings
from campusreg.registration import RegistrationService, StatisticsAggregator
from campusreg.registry import Registry


class Role(StrEnum):
    """Caller roles. The clinic role exists but has no registration endpoints."""

    STUDENT = "student"
    CLINIC = "clinic"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    """Authenticated caller identity, resolved from request headers."""

    user_id: str
    role: Role


# Global Settings instance (initialized on app startup)
_settings: Settings | None = None


def init_settings(settings: Settings) -> Settings:
    """Initialize the global Settings instance."""
    global _settings  # noqa: PLW0603
    _settings = settings
    return _settings


def get_settings() -> Settings:
    """Dependency that provides the Settings, falling back to defaults."""
    if _settings is None:
        return Settings()
    return _settings


# Type alias for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Global Registry instance (initialized on app startup)
_registry: Registry | None = None


def init_registry(
    db_path: str = "campusreg.db", max_update_retries: int = 3, busy_timeout: int = 30
) -> Registry:
    """Initialize the global Registry instance."""
    global _registry  # noqa: PLW0603
    _registry = Registry(
        db_path, max_update_retries=max_update_retries, busy_timeout=busy_timeout
    )
    return _registry


def close_registry() -> None:
    """Close the global Registry instance."""
    global _registry  # noqa: PLW0603
    if _registry is not None:
        _registry.close()
        _registry = None


def get_registry() -> Generator[Registry, None, None]:
    """Dependency that provides the Registry instance."""
    if _registry is None:
        raise RuntimeError("Registry not initialized. Call init_registry() first.")
    yield _registry


# Type alias for dependency injection
RegistryDep = Annotated[Registry, Depends(get_registry)]

# Global RegistrationService instance (initialized on app startup)
_registration_service: RegistrationService | None = None


def init_registration_service(service: RegistrationService) -> None:
    """Initialize the global RegistrationService instance."""
    global _registration_service  # noqa: PLW0603
    _registration_service = service


def close_registration_service() -> None:
    """Close the global RegistrationService instance."""
    global _registration_service  # noqa: PLW0603
    _registration_service = None


def get_registration_service() -> Generator[RegistrationService, None, None]:
    """Dependency that provides the RegistrationService instance."""
    if _registration_service is None:
        raise RuntimeError(
            "RegistrationService not initialized. Call init_registration_service() first."
        )
    yield _registration_service


# Type alias for dependency injection
RegistrationServiceDep = Annotated[RegistrationService, Depends(get_registration_service)]

# Global StatisticsAggregator instance (initialized on app startup)
_statistics: StatisticsAggregator | None = None


def init_statistics(statistics: StatisticsAggregator) -> None:
    """Initialize the global StatisticsAggregator instance."""
    global _statistics  # noqa: PLW0603
    _statistics = statistics


def close_statistics() -> None:
    """Close the global StatisticsAggregator instance."""
    global _statistics  # noqa: PLW0603
    _statistics = None


def get_statistics() -> Generator[StatisticsAggregator, None, None]:
    """Dependency that provides the StatisticsAggregator instance."""
    if _statistics is None:
        raise RuntimeError("StatisticsAggregator not initialized. Call init_statistics() first.")
    yield _statistics


# Type alias for dependency injection
StatisticsDep = Annotated[StatisticsAggregator, Depends(get_statistics)]


def get_caller(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Caller:
    """Resolve the caller from the X-User-Id and X-User-Role headers.

    Raises:
        AuthenticationRequiredError: If either header is missing or the role is unknown.
    """
    if not x_user_id or not x_user_role:
        raise AuthenticationRequiredError("Authentication required")
    try:
        role = Role(x_user_role.strip().lower())
    except ValueError as e:
        raise AuthenticationRequiredError(f"Unknown role '{x_user_role}'") from e
    return Caller(user_id=x_user_id.strip(), role=role)


CallerDep = Annotated[Caller, Depends(get_caller)]


def require_role(*roles: Role) -> Callable[[Caller], Caller]:
    """Build a dependency that admits only callers holding one of ``roles``."""

    def dependency(caller: CallerDep) -> Caller:
        if caller.role not in roles:
            raise RoleNotAllowedError(
                f"Role '{caller.role}' is not allowed to perform this action"
            )
        return caller

    return dependency


StudentDep = Annotated[Caller, Depends(require_role(Role.STUDENT))]
AdminDep = Annotated[Caller, Depends(require_role(Role.ADMIN))]
