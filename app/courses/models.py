from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime


class _Body(BaseModel):
    # Accept both titleEn and title_en
    model_config = ConfigDict(populate_by_name=True)


# ==================== COURSE MODELS ====================

class CourseCreate(_Body):
    title_en: str = Field(..., alias="titleEn", min_length=1)
    title_am: str = Field(..., alias="titleAm", min_length=1)
    description_en: str = Field(..., alias="descriptionEn", min_length=1)
    description_am: str = Field(..., alias="descriptionAm", min_length=1)
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    thumbnail_public_id: Optional[str] = Field(None, alias="thumbnailPublicId")

class CourseUpdate(_Body):
    title_en: Optional[str] = Field(None, alias="titleEn")
    title_am: Optional[str] = Field(None, alias="titleAm")
    description_en: Optional[str] = Field(None, alias="descriptionEn")
    description_am: Optional[str] = Field(None, alias="descriptionAm")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    thumbnail_public_id: Optional[str] = Field(None, alias="thumbnailPublicId")

class Course(BaseModel):
    course_id: str  # COURSE_XXXXXXXXXXXX
    title_en: str
    title_am: str
    description_en: str
    description_am: str
    thumbnail: str = ""
    thumbnail_public_id: str = ""
    created_by: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

# ==================== MODULE MODELS ====================

class ModuleCreate(_Body):
    course_id: str = Field(..., alias="courseId", min_length=1)
    title_en: str = Field(..., alias="titleEn", min_length=1)
    title_am: str = Field(..., alias="titleAm", min_length=1)
    content_en: str = Field(..., alias="contentEn", min_length=1)
    content_am: str = Field(..., alias="contentAm", min_length=1)
    video_url: Optional[str] = Field(None, alias="videoUrl")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    order: int = 0

class ModuleUpdate(_Body):
    title_en: Optional[str] = Field(None, alias="titleEn")
    title_am: Optional[str] = Field(None, alias="titleAm")
    content_en: Optional[str] = Field(None, alias="contentEn")
    content_am: Optional[str] = Field(None, alias="contentAm")
    video_url: Optional[str] = Field(None, alias="videoUrl")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    order: Optional[int] = None

class Module(BaseModel):
    module_id: str  # MOD_XXXXXXXXXXXX
    course_id: str
    title_en: str
    title_am: str
    content_en: str  # lecture text
    content_am: str
    video_url: Optional[str] = None  # embedded video link
    thumbnail: str = ""
    order: int = 0
    created_by: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

# ==================== QUIZ MODELS ====================

class QuizCreate(_Body):
    module_id: str = Field(..., alias="moduleId", min_length=1)
    question_en: str = Field(..., alias="questionEn", min_length=1)
    question_am: str = Field(..., alias="questionAm", min_length=1)
    options_en: List[str] = Field(..., alias="optionsEn")
    options_am: List[str] = Field(..., alias="optionsAm")
    correct_answer: str = Field(..., alias="correctAnswer", min_length=1)

    @field_validator("options_en", "options_am")
    @classmethod
    def validate_options(cls, v):
        if len(v) < 2:
            raise ValueError("At least two options are required in both languages")
        return v

class QuizUpdate(_Body):
    question_en: Optional[str] = Field(None, alias="questionEn")
    question_am: Optional[str] = Field(None, alias="questionAm")
    options_en: Optional[List[str]] = Field(None, alias="optionsEn")
    options_am: Optional[List[str]] = Field(None, alias="optionsAm")
    correct_answer: Optional[str] = Field(None, alias="correctAnswer")

    @field_validator("options_en", "options_am")
    @classmethod
    def validate_options(cls, v):
        if v is not None and len(v) < 2:
            raise ValueError("At least two options are required in both languages")
        return v

class Quiz(BaseModel):
    quiz_id: str  # QUIZ_XXXXXXXXXXXX
    module_id: str
    question_en: str
    question_am: str
    options_en: List[str]
    options_am: List[str]
    correct_answer: str  # option value, same in both languages
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
