from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum

class DrillState(str, Enum):
    LOCKED = "locked"
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class StartDrillRequest(BaseModel):
    module_id: int = Field(ge=0, le=20)
    drill_number: int = Field(ge=1)

class DrillStatus(BaseModel):
    drill_number: int
    status: DrillState
    locked: bool
    completed: bool
    accuracy: Optional[float] = None
    performance: str = "not_started"
    last_session_id: Optional[str] = None
    completed_at: Optional[str] = None

class ModuleDrillStatus(BaseModel):
    module_id: int
    drills: List[DrillStatus]
