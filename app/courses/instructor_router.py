from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, HTTPException

from app.auth.auth_utils import UserContext, get_current_instructor
from app.courses.course_service import CourseService
from app.courses.dependencies import get_course_service, get_lesson_store, get_media
from app.courses.lesson_store import LessonStore
from app.courses.models import CourseCreate, CourseUpdate, LessonCreate, LessonUpdate, PrerequisiteCreate, ReorderPayload
from app.courses.permissions import verify_course_owner, verify_lesson_owner
from app.storage.media import MediaStorage

router = APIRouter(prefix="/instructor", tags=["Instructor"])

# ==================== CATALOG ====================

@router.get("/categories")
async def get_categories(
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service)
):
    return await service.list_categories()

@router.get("/me/courses")
async def get_my_courses(
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service)
):
    """
    Courses created by the current instructor, newest first
    """
    return await service.instructor_courses(instructor.user_id)

@router.get("/courses/search")
async def search_courses(
    q: str = "",
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service)
):
    return await service.search_courses(instructor.user_id, q)

@router.get("/analytics")
async def get_analytics(
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service)
):
    """
    Enrollment count, completion rate and lesson count per course
    """
    return await service.course_analytics(instructor.user_id)

# ==================== COURSE MANAGEMENT ====================

@router.post("/courses", status_code=201)
async def create_course(
    data: CourseCreate,
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service)
):
    return await service.create_course(instructor.user_id, data)

@router.get("/courses/{course_id}")
async def get_course(
    course_id: int,
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service)
):
    return await service.get_owned_course(instructor.user_id, course_id)

@router.patch("/courses/{course_id}")
async def update_course(
    course_id: int,
    data: CourseUpdate,
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service)
):
    return await service.update_course(instructor.user_id, course_id, data)

@router.delete("/courses/{course_id}")
async def delete_course(
    course_id: int,
    background_tasks: BackgroundTasks,
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service),
    media: MediaStorage = Depends(get_media)
):
    """
    Delete a course with its lessons, enrollments and progress.
    Stored media is removed after the response.
    """
    urls = await service.delete_course(instructor.user_id, course_id)
    background_tasks.add_task(media.discard, urls)
    return {"success": True, "message": "Course deleted successfully"}

@router.post("/courses/{course_id}/thumbnail")
async def upload_thumbnail(
    course_id: int,
    background_tasks: BackgroundTasks,
    thumbnail: UploadFile = File(...),
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service),
    media: MediaStorage = Depends(get_media)
):
    await verify_course_owner(service.store, course_id, instructor.user_id)
    url = await media.save_thumbnail(thumbnail)
    try:
        course, previous = await service.set_thumbnail(instructor.user_id, course_id, url)
    except HTTPException:
        media.discard([url])
        raise

    if previous:
        background_tasks.add_task(media.discard, [previous])
    return course

@router.post("/courses/{course_id}/prerequisites", status_code=201)
async def add_prerequisite(
    course_id: int,
    data: PrerequisiteCreate,
    instructor: UserContext = Depends(get_current_instructor),
    service: CourseService = Depends(get_course_service)
):
    return await service.add_prerequisite(instructor.user_id, course_id, data.name)

# ==================== LESSON MANAGEMENT ====================

@router.post("/courses/{course_id}/lessons", status_code=201)
async def add_lesson(
    course_id: int,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    order: Optional[int] = Form(None),
    videoFile: Optional[UploadFile] = File(None),
    attachmentFile: Optional[UploadFile] = File(None),
    instructor: UserContext = Depends(get_current_instructor),
    lessons: LessonStore = Depends(get_lesson_store),
    media: MediaStorage = Depends(get_media)
):
    """
    Add a lesson (multipart form). Without `order` the lesson goes last.
    """
    await verify_course_owner(lessons.store, course_id, instructor.user_id)

    saved: List[str] = []
    try:
        video_url = await media.save_lesson_file(videoFile) if videoFile and videoFile.filename else None
        if video_url:
            saved.append(video_url)
        attachment_url = await media.save_lesson_file(attachmentFile) if attachmentFile and attachmentFile.filename else None
        if attachment_url:
            saved.append(attachment_url)

        return await lessons.add_lesson(
            instructor.user_id,
            course_id,
            LessonCreate(
                title=title,
                content=content,
                duration=duration,
                order=order,
                video_url=video_url,
                attachment_url=attachment_url
            )
        )
    except HTTPException:
        media.discard(saved)
        raise

@router.patch("/courses/{course_id}/lessons/reorder")
async def reorder_lessons(
    course_id: int,
    data: ReorderPayload,
    instructor: UserContext = Depends(get_current_instructor),
    lessons: LessonStore = Depends(get_lesson_store)
):
    """
    Full reorder: lessonIds[i] becomes position i + 1
    """
    return await lessons.reorder_lessons(instructor.user_id, course_id, data.lesson_ids)

@router.patch("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: int,
    background_tasks: BackgroundTasks,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    videoFile: Optional[UploadFile] = File(None),
    attachmentFile: Optional[UploadFile] = File(None),
    instructor: UserContext = Depends(get_current_instructor),
    lessons: LessonStore = Depends(get_lesson_store),
    media: MediaStorage = Depends(get_media)
):
    await verify_lesson_owner(lessons.store, lesson_id, instructor.user_id)

    saved: List[str] = []
    try:
        video_url = await media.save_lesson_file(videoFile) if videoFile and videoFile.filename else None
        if video_url:
            saved.append(video_url)
        attachment_url = await media.save_lesson_file(attachmentFile) if attachmentFile and attachmentFile.filename else None
        if attachment_url:
            saved.append(attachment_url)

        lesson, superseded = await lessons.update_lesson(
            instructor.user_id,
            lesson_id,
            LessonUpdate(
                title=title,
                content=content,
                duration=duration,
                video_url=video_url,
                attachment_url=attachment_url
            )
        )
    except HTTPException:
        media.discard(saved)
        raise

    if superseded:
        background_tasks.add_task(media.discard, superseded)
    return lesson

@router.delete("/lessons/{lesson_id}")
async def delete_lesson(
    lesson_id: int,
    background_tasks: BackgroundTasks,
    instructor: UserContext = Depends(get_current_instructor),
    lessons: LessonStore = Depends(get_lesson_store),
    media: MediaStorage = Depends(get_media)
):
    lesson = await lessons.delete_lesson(instructor.user_id, lesson_id)
    background_tasks.add_task(media.discard, [lesson.get("video_url"), lesson.get("attachment_url")])
    return {"success": True, "message": "Lesson deleted successfully"}
