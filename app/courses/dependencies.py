# app/courses/dependencies.py

from fastapi import Depends, Request

from app.courses.certificates import CertificateIssuer
from app.courses.course_service import CourseService
from app.courses.database import Store
from app.courses.duration import DurationAggregator
from app.courses.enrollment_service import EnrollmentService
from app.courses.lesson_store import LessonStore
from app.courses.progress import ProgressTracker
from app.storage.media import MediaStorage

# ==================== DEPENDENCY FUNCTIONS ====================

def get_store(request: Request) -> Store:
    """Store handle owned by the application"""
    return request.app.state.store


def get_media(request: Request) -> MediaStorage:
    return request.app.state.media


def get_durations(store: Store = Depends(get_store)) -> DurationAggregator:
    return DurationAggregator(store)


def get_lesson_store(
    store: Store = Depends(get_store),
    durations: DurationAggregator = Depends(get_durations)
) -> LessonStore:
    return LessonStore(store, durations)


def get_course_service(
    store: Store = Depends(get_store),
    lessons: LessonStore = Depends(get_lesson_store),
    durations: DurationAggregator = Depends(get_durations)
) -> CourseService:
    return CourseService(store, lessons, durations)


def get_enrollment_service(
    store: Store = Depends(get_store),
    lessons: LessonStore = Depends(get_lesson_store)
) -> EnrollmentService:
    return EnrollmentService(store, lessons)


def get_progress_tracker(store: Store = Depends(get_store)) -> ProgressTracker:
    return ProgressTracker(store)


def get_certificate_issuer(request: Request, store: Store = Depends(get_store)) -> CertificateIssuer:
    return CertificateIssuer(store, request.app.state.certificate_dir)
