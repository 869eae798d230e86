from pydantic import BaseModel, Field
from typing import List, Optional

class MasteryRecord(BaseModel):
    user_id: str
    micro_skill_id: int
    module_id: Optional[int] = None
    current_difficulty: int = Field(default=1, ge=1, le=10)
    recent_results: List[int] = []
    rolling_accuracy: Optional[float] = None
    total_attempts: int = 0
    correct_attempts: int = 0
    avg_time_seconds: float = 0.0
    last_practiced_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True

class SkillMastery(BaseModel):
    micro_skill_id: int
    micro_skill_name: str
    label: str
    rolling_accuracy: Optional[float] = None
    current_difficulty: int
    total_attempts: int
