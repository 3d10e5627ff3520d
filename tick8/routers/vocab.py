from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query

from tick8.core.deps import get_course_service
from tick8.core.security import get_current_user_id
from tick8.schemas.courses import ItemUpdateOut, LastFilledPageOut, PageOut
from tick8.services.courses import CourseService
from tick8.services.namespace import filename_from_course_id, validate_course_filename

router = APIRouter(prefix="/api/vocab-files", tags=["vocab"])


@router.get("/{filename}")
def get_vocab_file(
    filename: str,
    page: Optional[int] = Query(default=None, ge=0),
    pageSize: Optional[int] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    validate_course_filename(filename)
    if page is None:
        return courses.get_content(user_id, filename)
    size = pageSize if pageSize is not None else courses.default_page_size
    return PageOut(**courses.get_page(user_id, filename, page, size))


@router.get("/{filename}/last-filled-page", response_model=LastFilledPageOut)
def get_last_filled_page(
    filename: str,
    pageSize: Optional[int] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    validate_course_filename(filename)
    size = pageSize if pageSize is not None else courses.default_page_size
    return courses.get_last_filled_page(user_id, filename, size)


@router.patch("/{course_id}/{item_id}", response_model=ItemUpdateOut)
def update_item_states(
    course_id: str,
    item_id: str,
    states: List[str] = Body(...),
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    item = courses.update_item_states(user_id, filename_from_course_id(course_id), item_id, states)
    return ItemUpdateOut(item=item)
