"""Course and student catalog endpoints."""

from fastapi import APIRouter, Query, status

from campusreg.api.dependencies import AdminDep, CallerDep, RegistryDep
from campusreg.api.models import (
    APIResponse,
    CourseCreate,
    CourseResponse,
    StudentCreate,
    StudentResponse,
    course_to_response,
    student_to_response,
)
from campusreg.registry import CourseFilter

router = APIRouter(tags=["catalog"])


@router.get("/courses", response_model=APIResponse[list[CourseResponse]])
def list_courses(
    _caller: CallerDep,
    registry: RegistryDep,
    semester_id: str = Query(..., min_length=1),
    department: str | None = Query(default=None),
    search: str | None = Query(default=None),
) -> APIResponse[list[CourseResponse]]:
    """List a semester's courses."""
    registry.semesters.get(semester_id)
    courses = registry.courses.find_many_by_semester(
        semester_id, CourseFilter(department=department, search=search)
    )
    return APIResponse(data=[course_to_response(c) for c in courses])


@router.post(
    "/courses",
    response_model=APIResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_course(
    course: CourseCreate, _caller: AdminDep, registry: RegistryDep
) -> APIResponse[CourseResponse]:
    """Create a course in a semester."""
    created = registry.courses.create(
        name=course.name,
        code=course.code,
        semester_id=course.semester_id,
        credits=course.credits,
        department=course.department,
        description=course.description,
        instructor=course.instructor,
    )
    return APIResponse(data=course_to_response(created))


@router.post(
    "/students",
    response_model=APIResponse[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_student(
    student: StudentCreate, _caller: AdminDep, registry: RegistryDep
) -> APIResponse[StudentResponse]:
    """Create a student profile for a user account."""
    created = registry.students.create(
        user_id=student.user_id,
        full_name=student.full_name,
        student_number=student.student_number,
    )
    return APIResponse(data=student_to_response(created))
