"""Semester endpoints."""

from fastapi import APIRouter, Query, status

from campusreg.api.dependencies import AdminDep, CallerDep, RegistryDep, SettingsDep, StatisticsDep
from campusreg.api.models import (
    APIResponse,
    PaginationResponse,
    SemesterCreate,
    SemesterListResponse,
    SemesterResponse,
    SemesterSummaryResponse,
    SemesterUpdate,
    semester_summary_to_response,
    semester_to_response,
)

router = APIRouter(prefix="/semesters", tags=["semesters"])


@router.get("", response_model=APIResponse[SemesterListResponse])
def list_semesters(
    _caller: CallerDep,
    registry: RegistryDep,
    settings: SettingsDep,
    academic_year: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
) -> APIResponse[SemesterListResponse]:
    """List semesters, most recent first."""
    limit = limit or settings.default_page_size
    semesters = registry.semesters.list_semesters(
        academic_year=academic_year,
        is_active=is_active,
        limit=limit,
        offset=(page - 1) * limit,
    )
    total = registry.semesters.count(academic_year=academic_year, is_active=is_active)
    return APIResponse(
        data=SemesterListResponse(
            semesters=[semester_to_response(s) for s in semesters],
            pagination=PaginationResponse(
                current_page=page,
                total_pages=-(-total // limit),
                total_items=total,
                items_per_page=limit,
            ),
        )
    )


@router.get("/active", response_model=APIResponse[SemesterResponse])
def get_active_semester(_caller: CallerDep, registry: RegistryDep) -> APIResponse[SemesterResponse]:
    """Get the active semester."""
    semester = registry.semesters.get_active()
    return APIResponse(data=semester_to_response(semester))


@router.get("/{semester_id}", response_model=APIResponse[SemesterResponse])
def get_semester(
    semester_id: str, _caller: CallerDep, registry: RegistryDep
) -> APIResponse[SemesterResponse]:
    """Get a semester by ID."""
    semester = registry.semesters.get(semester_id)
    return APIResponse(data=semester_to_response(semester))


@router.post(
    "",
    response_model=APIResponse[SemesterResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_semester(
    semester: SemesterCreate, caller: AdminDep, registry: RegistryDep
) -> APIResponse[SemesterResponse]:
    """Create a new semester."""
    created = registry.semesters.create(
        name=semester.name,
        academic_year=semester.academic_year,
        start_date=semester.start_date,
        end_date=semester.end_date,
        registration_start=semester.registration_start,
        registration_end=semester.registration_end,
        is_registration_open=semester.is_registration_open,
        is_active=semester.is_active,
        description=semester.description,
        created_by=caller.user_id,
    )
    return APIResponse(data=semester_to_response(created))


@router.patch("/{semester_id}", response_model=APIResponse[SemesterResponse])
def update_semester(
    semester_id: str, semester: SemesterUpdate, _caller: AdminDep, registry: RegistryDep
) -> APIResponse[SemesterResponse]:
    """Update a semester (partial update)."""
    updated = registry.semesters.update(semester_id, **semester.model_dump(exclude_unset=True))
    return APIResponse(data=semester_to_response(updated))


@router.delete("/{semester_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_semester(semester_id: str, _caller: AdminDep, registry: RegistryDep) -> None:
    """Delete a semester without registrations or courses."""
    registry.semesters.delete(semester_id)


@router.put("/{semester_id}/activate", response_model=APIResponse[SemesterResponse])
def activate_semester(
    semester_id: str, _caller: AdminDep, registry: RegistryDep
) -> APIResponse[SemesterResponse]:
    """Make a semester the only active one."""
    semester = registry.semesters.activate_semester(semester_id)
    return APIResponse(data=semester_to_response(semester))


@router.get("/{semester_id}/statistics", response_model=APIResponse[SemesterSummaryResponse])
def get_semester_statistics(
    semester_id: str, _caller: AdminDep, statistics: StatisticsDep
) -> APIResponse[SemesterSummaryResponse]:
    """Catalog size, enrollment and most popular courses of a semester."""
    summary = statistics.semester_summary(semester_id)
    return APIResponse(data=semester_summary_to_response(summary))
