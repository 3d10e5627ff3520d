from datetime import datetime, timezone
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

from tick8.models.course import Course
from tick8.models.vocab import VocabDocument


class SnapshotInfo(BaseModel):
    id: str
    date: str
    createdAt: datetime
    note: str = ""

    @field_validator("createdAt")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # date sans fuseau = UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class Snapshot(SnapshotInfo):
    courses: List[Course] = Field(default_factory=list)
    vocabFiles: Dict[str, VocabDocument] = Field(default_factory=dict)

    @field_validator("vocabFiles", mode="before")
    @classmethod
    def _legacy_vocab(cls, v):
        # anciens snapshots : tableaux nus
        if isinstance(v, dict):
            return {
                name: raw if isinstance(raw, VocabDocument) else VocabDocument.from_raw(raw)
                for name, raw in v.items()
            }
        return v

    def info(self) -> SnapshotInfo:
        return SnapshotInfo(id=self.id, date=self.date, createdAt=self.createdAt, note=self.note)


class RestoreResult(BaseModel):
    restored: bool = True
    snapshotId: str
    filesRestored: int


class DeleteResult(BaseModel):
    deleted: bool = True
    snapshotId: str
