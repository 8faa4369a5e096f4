from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from enum import Enum

# ==================== ENUMS ====================

class Role(str, Enum):
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"

class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

# ==================== LESSON MODELS ====================

class LessonCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    duration: Optional[str] = None  # free text, e.g. "15 minutes"
    order: Optional[int] = Field(None, ge=0)  # 0 / None -> append at the end
    video_url: Optional[str] = None
    attachment_url: Optional[str] = None

class LessonUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    duration: Optional[str] = None
    video_url: Optional[str] = None
    attachment_url: Optional[str] = None

class ReorderPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lesson_ids: List[int] = Field(..., alias="lessonIds")

# ==================== COURSE MODELS ====================

def _split_prerequisites(v):
    if v is None:
        return v
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    return v

def _blank_category(v):
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return None
        try:
            return int(v)
        except ValueError:
            return None
    return v

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category_id: Optional[int] = None
    difficulty: Difficulty = Difficulty.BEGINNER
    thumbnail_url: Optional[str] = None
    prerequisites: List[str] = []
    lessons: List[LessonCreate] = []

    split_prerequisites = field_validator("prerequisites", mode="before")(_split_prerequisites)
    blank_category = field_validator("category_id", mode="before")(_blank_category)

class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category_id: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    prerequisites: Optional[List[str]] = None

    split_prerequisites = field_validator("prerequisites", mode="before")(_split_prerequisites)
    blank_category = field_validator("category_id", mode="before")(_blank_category)

class PrerequisiteCreate(BaseModel):
    name: str = Field(..., min_length=1)

# ==================== ENROLLMENT / PROGRESS MODELS ====================

class CompleteLessonPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    lesson_id: int = Field(..., alias="lessonId")

class ProgressUpsert(BaseModel):
    completed: Optional[bool] = None
    score: Optional[float] = None
