from typing import Optional

from pydantic import BaseModel, ConfigDict

from tick8.models.snapshot import SnapshotInfo


class MaintenanceState(BaseModel):
    model_config = ConfigDict(extra="allow")

    lastDecay: Optional[str] = None  # date ISO (YYYY-MM-DD)
    lastAutoSnapshotWeek: Optional[int] = None


class DecayRunResult(BaseModel):
    run: bool
    coursesModified: int = 0
    message: str = ""


class AutoSnapshotResult(BaseModel):
    created: bool
    snapshot: Optional[SnapshotInfo] = None
    error: Optional[str] = None
