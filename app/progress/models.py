from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, StrictInt


class ProgressState(str, Enum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# ==================== DATABASE MODELS ====================

class UserProgress(BaseModel):
    progress_id: str  # PRG_XXXXXXXXXXXX
    user_id: str
    course_id: str
    module_id: Optional[str] = None  # last touched module
    points: int = 0
    level: int = 1
    badges: List[str] = []
    completed_modules: List[str] = []
    course_completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def state(self) -> ProgressState:
        if self.course_completed:
            return ProgressState.COMPLETED
        if self.points > 0:
            return ProgressState.IN_PROGRESS
        return ProgressState.NEW


class ProgressUpdateResult(BaseModel):
    progress: UserProgress
    course_completed: bool
    already_completed: bool


# ==================== REQUEST MODELS ====================

class _CamelBody(BaseModel):
    # Accept both courseId and course_id
    model_config = ConfigDict(populate_by_name=True)


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be empty")
    return v.strip()


RecordId = Annotated[str, AfterValidator(_not_blank)]


class EnrollRequest(_CamelBody):
    course_id: RecordId = Field(..., alias="courseId")


class ProgressUpdateRequest(_CamelBody):
    course_id: RecordId = Field(..., alias="courseId")
    module_id: RecordId = Field(..., alias="moduleId")
    points_earned: StrictInt = Field(..., alias="pointsEarned", ge=0)
    mark_module_complete: StrictBool = Field(False, alias="markModuleComplete")


class QuizSubmission(BaseModel):
    answers: Dict[str, str]  # quiz_id -> chosen option


# ==================== RESPONSE MODELS ====================

class ProgressWithCourse(UserProgress):
    course_title_en: Optional[str] = None
    course_title_am: Optional[str] = None


class LeaderboardUser(BaseModel):
    username: str
    email: str


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    user: LeaderboardUser
    points: int


class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardEntry]
