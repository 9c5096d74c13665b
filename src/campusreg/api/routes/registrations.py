"""Course registration endpoints."""

from fastapi import APIRouter, Query, status

from campusreg.api.dependencies import (
    AdminDep,
    RegistrationServiceDep,
    SettingsDep,
    StatisticsDep,
    StudentDep,
)
from campusreg.api.models import (
    APIResponse,
    AvailableCourseResponse,
    GradeRequest,
    RegisterRequest,
    RegistrationListResponse,
    RegistrationResponse,
    RegistrationStatisticsResponse,
    StatusUpdateRequest,
    available_course_to_response,
    listing_to_response,
    registration_to_response,
    statistics_to_response,
)
from campusreg.registry import CourseFilter, RegistrationQuery, RegistrationStatus

router = APIRouter(prefix="/registrations", tags=["registrations"])


# Student endpoints


@router.post(
    "/register",
    response_model=APIResponse[list[RegistrationResponse]],
    status_code=status.HTTP_201_CREATED,
)
def register_for_courses(
    request: RegisterRequest, caller: StudentDep, service: RegistrationServiceDep
) -> APIResponse[list[RegistrationResponse]]:
    """Register the calling student for one or more courses."""
    created = service.register_for_courses(
        caller.user_id, request.course_ids, request.semester_id
    )
    return APIResponse(data=[registration_to_response(r) for r in created])


@router.get("/my-registrations", response_model=APIResponse[list[RegistrationResponse]])
def list_my_registrations(
    caller: StudentDep,
    service: RegistrationServiceDep,
    semester_id: str | None = Query(default=None),
    registration_status: RegistrationStatus | None = Query(default=None, alias="status"),
) -> APIResponse[list[RegistrationResponse]]:
    """List the calling student's registrations, most recent first."""
    registrations = service.list_my_registrations(
        caller.user_id, semester_id=semester_id, status=registration_status
    )
    return APIResponse(data=[registration_to_response(r) for r in registrations])


@router.put("/drop/{registration_id}", response_model=APIResponse[RegistrationResponse])
def drop_course(
    registration_id: str, caller: StudentDep, service: RegistrationServiceDep
) -> APIResponse[RegistrationResponse]:
    """Drop one of the calling student's registrations."""
    dropped = service.drop_course(caller.user_id, registration_id)
    return APIResponse(data=registration_to_response(dropped))


@router.get("/available-courses", response_model=APIResponse[list[AvailableCourseResponse]])
def list_available_courses(
    caller: StudentDep,
    service: RegistrationServiceDep,
    semester_id: str = Query(..., min_length=1),
    department: str | None = Query(default=None),
    search: str | None = Query(default=None),
) -> APIResponse[list[AvailableCourseResponse]]:
    """List a semester's courses, flagging the ones the student already holds."""
    courses = service.list_available_courses(
        caller.user_id,
        semester_id,
        CourseFilter(department=department, search=search),
    )
    return APIResponse(data=[available_course_to_response(c) for c in courses])


# Administrative endpoints


@router.get("", response_model=APIResponse[RegistrationListResponse])
def list_registrations(
    _caller: AdminDep,
    service: RegistrationServiceDep,
    settings: SettingsDep,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1, le=100),
    semester_id: str | None = Query(default=None),
    registration_status: RegistrationStatus | None = Query(default=None, alias="status"),
    course_id: str | None = Query(default=None),
    department: str | None = Query(default=None),
    search: str | None = Query(default=None),
) -> APIResponse[RegistrationListResponse]:
    """List all registrations with filters and pagination."""
    query = RegistrationQuery(
        semester_id=semester_id,
        status=registration_status,
        course_id=course_id,
        department=department,
        search=search,
        page=page,
        limit=limit or settings.default_page_size,
    )
    listing = service.list_registrations(query)
    return APIResponse(data=listing_to_response(listing))


@router.get("/statistics", response_model=APIResponse[RegistrationStatisticsResponse])
def get_statistics(
    _caller: AdminDep,
    statistics: StatisticsDep,
    semester_id: str | None = Query(default=None),
) -> APIResponse[RegistrationStatisticsResponse]:
    """Registration statistics, optionally for one semester."""
    stats = statistics.registration_statistics(semester_id)
    return APIResponse(data=statistics_to_response(stats))


@router.put("/{registration_id}/status", response_model=APIResponse[RegistrationResponse])
def update_status(
    registration_id: str,
    request: StatusUpdateRequest,
    caller: AdminDep,
    service: RegistrationServiceDep,
) -> APIResponse[RegistrationResponse]:
    """Set a registration's status and record the reviewer."""
    updated = service.review_or_update_status(
        registration_id, request.status, request.notes, reviewer_id=caller.user_id
    )
    return APIResponse(data=registration_to_response(updated))


@router.put("/{registration_id}/grade", response_model=APIResponse[RegistrationResponse])
def add_grade(
    registration_id: str,
    request: GradeRequest,
    _caller: AdminDep,
    service: RegistrationServiceDep,
) -> APIResponse[RegistrationResponse]:
    """Record a grade for a registration."""
    graded = service.add_grade(registration_id, request.grade, request.notes)
    return APIResponse(data=registration_to_response(graded))
