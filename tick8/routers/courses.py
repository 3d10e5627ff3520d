from typing import List

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from tick8.core.deps import get_course_service, get_scheduler
from tick8.core.security import get_current_user_id
from tick8.models.course import Course
from tick8.models.vocab import VocabItem
from tick8.schemas.courses import (
    AppendIn, AppendOut,
    CourseCreateIn, CourseCreateOut,
    CourseOrderIn, CourseUpdateIn,
)
from tick8.services.courses import CourseService
from tick8.services.maintenance import MaintenanceScheduler
from tick8.services.namespace import filename_from_course_id

router = APIRouter(prefix="/api/courses", tags=["courses"])


@router.get("", response_model=List[Course])
def list_courses(
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
    scheduler: MaintenanceScheduler = Depends(get_scheduler),
):
    # l'auto-snapshot hebdo ne fait jamais échouer le listing
    scheduler.check_auto_snapshot(user_id)
    return courses.list_courses(user_id)


@router.post("", response_model=CourseCreateOut, status_code=HTTP_201_CREATED)
def create_course(
    payload: CourseCreateIn,
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    course = courses.create_course(user_id, payload.name, payload.content, payload.pageSize)
    return CourseCreateOut(filename=course.filename, course=course)


@router.put("/order", response_model=List[Course])
def reorder_courses(
    payload: CourseOrderIn,
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    return courses.reorder(user_id, payload.filenames)


@router.get("/{course_id}", response_model=List[VocabItem])
def get_course_content(
    course_id: str,
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    filename = filename_from_course_id(course_id)
    courses.get_course(user_id, filename)
    return courses.get_content(user_id, filename)


@router.put("/{course_id}", response_model=Course)
def update_course(
    course_id: str,
    payload: CourseUpdateIn,
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    updates = payload.model_dump(exclude_none=True)
    return courses.update_course(user_id, filename_from_course_id(course_id), updates)


@router.delete("/{course_id}")
def delete_course(
    course_id: str,
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    course = courses.delete_course(user_id, filename_from_course_id(course_id))
    return {"success": True, "message": f"Course '{course.name}' deleted"}


@router.post("/{course_id}/append", response_model=AppendOut)
def append_to_course(
    course_id: str,
    payload: AppendIn,
    user_id: str = Depends(get_current_user_id),
    courses: CourseService = Depends(get_course_service),
):
    total = courses.append_items(user_id, filename_from_course_id(course_id), payload.content)
    return AppendOut(total=total)
