from pydantic import BaseModel, Field
from typing import Any, List, Optional
from enum import Enum

class QuestionType(str, Enum):
    MCQ = "mcq"
    NUMERIC = "numeric"
    TEXT = "text"

class QuestionStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PUBLISHED = "published"
    ARCHIVED = "archived"

SERVABLE_STATUSES = (QuestionStatus.ACTIVE.value, QuestionStatus.PUBLISHED.value)

class QuestionBase(BaseModel):
    module_id: int = Field(ge=0, le=20)
    micro_skill_id: int
    difficulty_level: int = Field(ge=1, le=10)
    expected_time_seconds: int = Field(default=60, gt=0)
    points: int = Field(default=10, ge=0)
    text: str
    type: QuestionType
    options: List[str] = []
    hints: List[str] = []

class Question(QuestionBase):
    id: str
    correct_answer: Any
    solution_steps: List[str] = []
    explanation: Optional[str] = None
    status: QuestionStatus = QuestionStatus.ACTIVE

    class Config:
        from_attributes = True

class QuestionPublic(QuestionBase):
    """Question as shown to the learner: no answer, no solution."""
    question_id: str
    module_name: str
    micro_skill_name: str
