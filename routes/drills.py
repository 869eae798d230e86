from fastapi import APIRouter, Depends
from config import load_config
from db.database import get_db
from models.drill import StartDrillRequest
from utils.auth import require_user
from utils.drills import drill_status, reset_drills
from utils.errors import NoEligibleSkillsError
from utils.catalog import module_exists
from utils.planner import start_drill

router = APIRouter()

def _require_module(conn, module_id: int) -> None:
    if not module_exists(conn, module_id):
        raise NoEligibleSkillsError(f"Unknown module: {module_id}", {"module_ids": [module_id]})

@router.post("/start")
async def start(payload: StartDrillRequest, user_id: str = Depends(require_user), conn = Depends(get_db)):
    """Start an adaptive drill; drill N needs drill N-1 of the module completed."""
    plan = start_drill(conn, user_id, payload.module_id, payload.drill_number)
    return {"success": True, "data": plan.model_dump(mode="json")}

@router.get("/{module_id}/status")
async def status(module_id: int, user_id: str = Depends(require_user), conn = Depends(get_db)):
    _require_module(conn, module_id)
    result = drill_status(conn, user_id, module_id, load_config())
    return {"success": True, "data": result.model_dump(mode="json")}

@router.post("/{module_id}/reset")
async def reset(module_id: int, user_id: str = Depends(require_user), conn = Depends(get_db)):
    _require_module(conn, module_id)
    return {"success": True, "data": reset_drills(conn, user_id, module_id)}
