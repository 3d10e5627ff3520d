from pydantic import BaseModel, Field

from tick8.models.snapshot import SnapshotInfo


class SnapshotCreateIn(BaseModel):
    # tronquée côté service à MAX_NOTE_LENGTH
    note: str = Field(default="", max_length=10000)


class SnapshotCreateOut(BaseModel):
    success: bool = True
    snapshot: SnapshotInfo
