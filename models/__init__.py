from .catalog import Module, MicroSkill, ModuleOverview, MicroSkillOverview
from .question import Question, QuestionPublic, QuestionType, QuestionStatus
from .mastery import MasteryRecord, SkillMastery
from .drill import DrillState, DrillStatus, ModuleDrillStatus, StartDrillRequest
from .session import (
    AnswerFeedback,
    AnswerTrailEntry,
    SessionDetails,
    SessionPlan,
    SessionStatus,
    SessionSummary,
    SessionType,
    StartPracticeRequest,
    SubmitAnswerRequest,
)

__all__ = [
    'Module', 'MicroSkill', 'ModuleOverview', 'MicroSkillOverview',
    'Question', 'QuestionPublic', 'QuestionType', 'QuestionStatus',
    'MasteryRecord', 'SkillMastery',
    'DrillState', 'DrillStatus', 'ModuleDrillStatus', 'StartDrillRequest',
    'AnswerFeedback', 'AnswerTrailEntry', 'SessionDetails', 'SessionPlan', 'SessionStatus',
    'SessionSummary', 'SessionType', 'StartPracticeRequest', 'SubmitAnswerRequest',
]
