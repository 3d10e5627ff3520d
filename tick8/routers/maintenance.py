from fastapi import APIRouter, Depends

from tick8.core.deps import get_scheduler
from tick8.core.security import get_current_user_id
from tick8.models.maintenance import DecayRunResult
from tick8.services.maintenance import MaintenanceScheduler

router = APIRouter(prefix="/api/maintenance", tags=["maintenance"])


@router.post("/decay", response_model=DecayRunResult)
def run_daily_decay(
    user_id: str = Depends(get_current_user_id),
    scheduler: MaintenanceScheduler = Depends(get_scheduler),
):
    return scheduler.run_decay(user_id)
