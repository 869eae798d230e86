from pydantic import BaseModel
from typing import List

class MicroSkill(BaseModel):
    id: int
    module_id: int
    name: str
    description: str = ""
    estimated_time_seconds: int = 60
    prerequisite_ids: List[int] = []

    class Config:
        from_attributes = True

class Module(BaseModel):
    id: int
    name: str
    description: str = ""
    micro_skill_ids: List[int] = []

    class Config:
        from_attributes = True

class MicroSkillOverview(BaseModel):
    id: int
    name: str
    question_count: int

class ModuleOverview(BaseModel):
    id: int
    name: str
    description: str
    question_count: int
    micro_skills: List[MicroSkillOverview]
