from typing import Optional

from fastapi import APIRouter, Depends

from app.auth.auth_utils import UserContext, get_optional_user
from app.courses.course_service import CourseService
from app.courses.dependencies import get_course_service
from app.courses.models import Role

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get("/public")
async def list_public_courses(
    user: Optional[UserContext] = Depends(get_optional_user),
    service: CourseService = Depends(get_course_service)
):
    """
    Catalog of all courses, newest first.
    Signed-in students also get an `enrolled` flag per course.
    """
    student_id = user.user_id if user and user.role == Role.STUDENT else None
    return await service.list_public_courses(student_id)


@router.get("/{course_id}")
async def get_course(course_id: int, service: CourseService = Depends(get_course_service)):
    return await service.get_course(course_id)
