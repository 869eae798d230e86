from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from enum import Enum

from .question import QuestionPublic

class SessionType(str, Enum):
    PRACTICE = "practice"
    DRILL = "drill"

class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

class StartPracticeRequest(BaseModel):
    session_size: Optional[int] = Field(default=None, ge=1)
    module_id: Optional[int] = Field(default=None, ge=0, le=20)
    focus_modules: List[int] = []

class SubmitAnswerRequest(BaseModel):
    question_id: str
    user_answer: Any = None
    time_spent_seconds: float = Field(default=0, ge=0)
    hints_used: int = Field(default=0, ge=0)

class ProgressInfo(BaseModel):
    questions_remaining: int
    estimated_time_minutes: int

class SessionPlan(BaseModel):
    session_id: str
    session_type: SessionType
    module_id: Optional[int] = None
    drill_number: Optional[int] = None
    total_questions: int
    current_question_index: int = 0
    started_at: str
    first_question: QuestionPublic
    progress_info: ProgressInfo
    allocation: Dict[int, int] = {}

class AnswerTrailEntry(BaseModel):
    position: int
    question_id: str
    micro_skill_id: int
    difficulty: int
    user_answer: Any = None
    is_correct: bool
    time_spent_seconds: float
    expected_time_seconds: int = 60
    confidence_score: float
    hints_used: int = 0
    points_earned: int = 0
    answered_at: str

    class Config:
        from_attributes = True

class Feedback(BaseModel):
    correct_answer: Any
    solution_steps: List[str] = []
    explanation: Optional[str] = None
    near_miss: bool = False
    confidence_interpretation: str = ""

class PerformanceUpdate(BaseModel):
    micro_skill_id: int
    current_mastery: str
    mastery_accuracy: Optional[float] = None
    current_difficulty: int
    difficulty_adjustment: str
    accuracy_so_far: float

class SessionProgress(BaseModel):
    questions_answered: int
    questions_remaining: int
    current_score: int

class AnswerFeedback(BaseModel):
    is_correct: bool
    points_earned: int
    confidence_score: float
    feedback: Feedback
    performance_update: PerformanceUpdate
    session_progress: SessionProgress
    next_question: Optional[QuestionPublic] = None
    session_complete: bool

class ConfidenceMetrics(BaseModel):
    avg_confidence: float
    high_confidence_count: int
    medium_confidence_count: int
    low_confidence_count: int

class QuartileStats(BaseModel):
    questions: int
    accuracy: float
    avg_time_seconds: float

class DifficultyTimeStat(BaseModel):
    difficulty: int
    questions_count: int
    avg_time_seconds: float
    expected_time_seconds: float
    time_ratio: float

class TimeInsights(BaseModel):
    fatigue_detected: bool
    early_quartile: Optional[QuartileStats] = None
    late_quartile: Optional[QuartileStats] = None
    accuracy_drop: float = 0.0
    time_increase: float = 0.0
    time_difficulty_correlation: Optional[float] = None
    time_accuracy_correlation: Optional[float] = None
    difficulty_breakdown: List[DifficultyTimeStat] = []

class SkillBreakdown(BaseModel):
    micro_skill_id: int
    attempted: int
    correct: int
    accuracy: float

class SessionSummary(BaseModel):
    session_id: str
    session_type: SessionType
    module_id: Optional[int] = None
    drill_number: Optional[int] = None
    started_at: str
    completed_at: str
    duration_seconds: int
    duration_minutes: int
    total_questions: int
    questions_attempted: int
    questions_correct: int
    accuracy: float
    points_earned: int
    avg_time_per_question: float
    confidence_metrics: ConfidenceMetrics
    time_insights: TimeInsights
    skill_breakdown: List[SkillBreakdown] = []
    next_drill_unlocked: Optional[bool] = None

class SessionDetails(BaseModel):
    session_id: str
    user_id: str
    session_type: SessionType
    module_id: Optional[int] = None
    drill_number: Optional[int] = None
    status: SessionStatus
    total_questions: int
    current_position: int
    started_at: str
    completed_at: Optional[str] = None
    planned_question_ids: List[str]
    answers: List[AnswerTrailEntry]
    summary: Optional[SessionSummary] = None

class HistoryEntry(BaseModel):
    session_id: str
    session_type: SessionType
    module_id: Optional[int] = None
    module_name: str
    drill_number: Optional[int] = None
    started_at: str
    completed_at: str
    total_questions: int
    questions_correct: int
    accuracy: float
    points_earned: int

class ModuleHistoryStats(BaseModel):
    module_id: Optional[int] = None
    name: str
    sets_attempted: int
    correct: int
    wrong: int
    accuracy: float

class HistoryStats(BaseModel):
    total_questions: int
    total_correct: int
    total_wrong: int
    total_sets: int
    module_breakdown: List[ModuleHistoryStats]

class PracticeHistory(BaseModel):
    stats: HistoryStats
    history: List[HistoryEntry]
