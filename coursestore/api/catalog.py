# FILE: coursestore/api/catalog.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.api.deps import get_user_id
from coursestore.core.database import get_db
from coursestore.crud import crud_courses, crud_enrollments
from coursestore.schemas.catalog import CourseDto

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/courses", response_model=List[CourseDto])
async def list_courses(db: AsyncSession = Depends(get_db)):
    """Public storefront."""
    return [CourseDto.model_validate(c) for c in await crud_courses.list_active(db)]


@router.get("/me/courses", response_model=List[CourseDto])
async def my_courses(
        student_id: Optional[int] = Query(None, alias="studentId"),
        user_id: int = Depends(get_user_id),
        db: AsyncSession = Depends(get_db),
):
    courses = await crud_enrollments.courses_for(db, user_id, student_id)
    return [CourseDto.model_validate(c) for c in courses]
