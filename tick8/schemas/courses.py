from typing import Any, List, Optional

from pydantic import BaseModel, Field

from tick8.models.course import Course
from tick8.models.vocab import VocabItem


class CourseCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    content: List[Any]
    pageSize: Optional[int] = None


class CourseCreateOut(BaseModel):
    message: str = "Course created"
    filename: str
    course: Course


class CourseUpdateIn(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    pageSize: Optional[int] = None
    order: Optional[int] = None


class CourseOrderIn(BaseModel):
    filenames: List[str]


class AppendIn(BaseModel):
    content: List[Any]


class AppendOut(BaseModel):
    success: bool = True
    total: int


class PageOut(BaseModel):
    data: List[VocabItem]
    page: int
    pageSize: int
    total: int
    totalPages: int


class LastFilledPageOut(BaseModel):
    lastFilledPage: int
    lastFilledIndex: int
    totalItems: int
    pageSize: int


class ItemUpdateOut(BaseModel):
    success: bool = True
    item: VocabItem

