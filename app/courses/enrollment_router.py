from fastapi import APIRouter, Depends

from app.auth.auth_utils import UserContext, get_current_instructor, get_current_student
from app.courses.certificates import CertificateIssuer
from app.courses.dependencies import get_certificate_issuer, get_enrollment_service, get_progress_tracker
from app.courses.enrollment_service import EnrollmentService
from app.courses.models import CompleteLessonPayload
from app.courses.progress import ProgressTracker

router = APIRouter(prefix="/enrollments", tags=["Enrollments"])

# ==================== ENROLLMENT ====================

@router.post("/course/{course_id}", status_code=201)
async def enroll(
    course_id: int,
    student: UserContext = Depends(get_current_student),
    service: EnrollmentService = Depends(get_enrollment_service)
):
    enrollment = await service.enroll(student.user_id, course_id)
    return {"success": True, "message": "Enrolled successfully", "enrollment": enrollment}

@router.get("/my-courses")
async def get_my_courses(
    student: UserContext = Depends(get_current_student),
    service: EnrollmentService = Depends(get_enrollment_service)
):
    return await service.student_enrollments(student.user_id)

@router.get("/course-details/{course_id}")
async def get_course_details(
    course_id: int,
    student: UserContext = Depends(get_current_student),
    service: EnrollmentService = Depends(get_enrollment_service)
):
    return await service.course_details(student.user_id, course_id)

@router.get("/course/{course_id}/students")
async def get_enrolled_students(
    course_id: int,
    instructor: UserContext = Depends(get_current_instructor),
    service: EnrollmentService = Depends(get_enrollment_service)
):
    return await service.enrolled_students(instructor.user_id, course_id)

# ==================== PROGRESS & CERTIFICATES ====================

@router.patch("/course/{course_id}/complete-lesson")
async def complete_lesson(
    course_id: int,
    data: CompleteLessonPayload,
    student: UserContext = Depends(get_current_student),
    tracker: ProgressTracker = Depends(get_progress_tracker)
):
    result = await tracker.complete_lesson(student.user_id, course_id, data.lesson_id)
    return {
        "success": True,
        "message": "Lesson marked as completed",
        "progress": result["progress"],
        "completedAt": result["completed_at"]
    }

@router.patch("/course/{course_id}/generate-certificate")
async def generate_certificate(
    course_id: int,
    student: UserContext = Depends(get_current_student),
    issuer: CertificateIssuer = Depends(get_certificate_issuer)
):
    """
    Issue (or return the already issued) completion certificate
    """
    certificate_url = await issuer.generate_certificate(student.user_id, course_id)
    return {"success": True, "certificateUrl": certificate_url}
