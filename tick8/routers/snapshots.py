from typing import List, Optional

from fastapi import APIRouter, Depends

from tick8.core.deps import get_snapshot_manager
from tick8.core.security import get_current_user_id
from tick8.models.snapshot import SnapshotInfo
from tick8.schemas.snapshots import SnapshotCreateIn, SnapshotCreateOut
from tick8.services.snapshots import SnapshotManager

router = APIRouter(prefix="/api/snapshots", tags=["snapshots"])


@router.post("", response_model=SnapshotCreateOut)
def create_snapshot(
    payload: Optional[SnapshotCreateIn] = None,
    user_id: str = Depends(get_current_user_id),
    snapshots: SnapshotManager = Depends(get_snapshot_manager),
):
    note = payload.note if payload else ""
    return SnapshotCreateOut(snapshot=snapshots.create(user_id, note))


@router.get("", response_model=List[SnapshotInfo])
def list_snapshots(
    user_id: str = Depends(get_current_user_id),
    snapshots: SnapshotManager = Depends(get_snapshot_manager),
):
    return snapshots.list(user_id)


@router.post("/{snapshot_id}/restore")
def restore_snapshot(
    snapshot_id: str,
    user_id: str = Depends(get_current_user_id),
    snapshots: SnapshotManager = Depends(get_snapshot_manager),
):
    result = snapshots.restore(user_id, snapshot_id)
    return {"success": True, **result.model_dump()}


@router.delete("/{snapshot_id}")
def delete_snapshot(
    snapshot_id: str,
    user_id: str = Depends(get_current_user_id),
    snapshots: SnapshotManager = Depends(get_snapshot_manager),
):
    result = snapshots.delete(user_id, snapshot_id)
    return {"success": True, **result.model_dump()}
