from fastapi import APIRouter, Depends

from app.auth.auth_utils import UserContext, get_current_instructor, get_current_student
from app.courses.dependencies import get_progress_tracker
from app.courses.models import ProgressUpsert
from app.courses.progress import ProgressTracker

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.post("/course/{course_id}")
async def upsert_progress(
    course_id: int,
    data: ProgressUpsert,
    student: UserContext = Depends(get_current_student),
    tracker: ProgressTracker = Depends(get_progress_tracker)
):
    return await tracker.upsert_progress(student.user_id, course_id, data)


@router.get("/my-courses")
async def get_my_progress(
    student: UserContext = Depends(get_current_student),
    tracker: ProgressTracker = Depends(get_progress_tracker)
):
    return await tracker.student_progress(student.user_id)


@router.get("/course/{course_id}")
async def get_course_progress(
    course_id: int,
    instructor: UserContext = Depends(get_current_instructor),
    tracker: ProgressTracker = Depends(get_progress_tracker)
):
    return await tracker.course_progress(instructor.user_id, course_id)
