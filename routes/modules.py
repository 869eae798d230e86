from fastapi import APIRouter, Depends
from db.database import get_db
from models.catalog import MicroSkillOverview, ModuleOverview
from models.mastery import SkillMastery
from models.question import SERVABLE_STATUSES
from utils.auth import require_user
from utils.catalog import get_module_skills, module_exists
from utils.errors import NoEligibleSkillsError
from utils.mastery import get_masteries, mastery_label

router = APIRouter()

def _question_counts(conn):
    """Servable question count per micro-skill."""
    placeholders = ",".join("?" for _ in SERVABLE_STATUSES)
    rows = conn.execute(
        f"SELECT micro_skill_id, COUNT(*) FROM questions WHERE status IN ({placeholders}) GROUP BY micro_skill_id",
        SERVABLE_STATUSES,
    ).fetchall()
    return {row[0]: row[1] for row in rows}

@router.get("")
async def list_modules(user_id: str = Depends(require_user), conn = Depends(get_db)):
    """List the module catalog with question counts per micro-skill."""
    counts = _question_counts(conn)
    modules = []
    for row in conn.execute("SELECT id, name, description FROM modules ORDER BY id").fetchall():
        skills = [
            MicroSkillOverview(id=skill["id"], name=skill["name"], question_count=counts.get(skill["id"], 0))
            for skill in get_module_skills(conn, row["id"])
        ]
        modules.append(
            ModuleOverview(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                question_count=sum(s.question_count for s in skills),
                micro_skills=skills,
            )
        )
    return {"success": True, "data": [m.model_dump() for m in modules]}

@router.get("/{module_id}/mastery")
async def module_mastery(module_id: int, user_id: str = Depends(require_user), conn = Depends(get_db)):
    """The caller's mastery of each micro-skill in a module."""
    if not module_exists(conn, module_id):
        raise NoEligibleSkillsError(f"Unknown module: {module_id}", {"module_ids": [module_id]})
    skills = get_module_skills(conn, module_id)
    masteries = get_masteries(conn, user_id, [skill["id"] for skill in skills])
    overview = [
        SkillMastery(
            micro_skill_id=skill["id"],
            micro_skill_name=skill["name"],
            label=mastery_label(masteries[skill["id"]].rolling_accuracy),
            rolling_accuracy=masteries[skill["id"]].rolling_accuracy,
            current_difficulty=masteries[skill["id"]].current_difficulty,
            total_attempts=masteries[skill["id"]].total_attempts,
        )
        for skill in skills
    ]
    return {"success": True, "data": {"module_id": module_id, "micro_skills": [s.model_dump() for s in overview]}}
