# FILE: coursestore/api/students.py
from datetime import timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.api.deps import get_user_id
from coursestore.core.database import get_db
from coursestore.crud import crud_users, crud_students
from coursestore.models import StudentProfile
from coursestore.schemas.students import CreateStudentRequest, StudentResponse, StudentSummary

router = APIRouter(prefix="/api/parents", tags=["students"])


def _student_out(s: StudentProfile) -> StudentResponse:
    return StudentResponse(
        id=s.id,
        parent_user_id=s.parent_user_id,
        name=s.name,
        age=s.age,
        avatar_url=s.avatar_url,
        created_at=s.created_at.replace(tzinfo=timezone.utc).isoformat(),
    )


@router.get("/me/students", response_model=List[StudentResponse])
async def my_students(user_id: int = Depends(get_user_id), db: AsyncSession = Depends(get_db)):
    return [_student_out(s) for s in await crud_students.list_by_parent(db, user_id)]


@router.get("/me/students/with-stats", response_model=List[StudentSummary])
async def my_students_with_stats(user_id: int = Depends(get_user_id), db: AsyncSession = Depends(get_db)):
    items: List[StudentSummary] = []
    for s in await crud_students.list_by_parent(db, user_id):
        items.append(
            StudentSummary(
                id=s.id,
                name=s.name,
                age=s.age,
                avatar_url=s.avatar_url,
                courses_enrolled=await crud_students.count_enrollments(db, s.id),
            )
        )
    return items


@router.post("/me/students", response_model=StudentResponse)
async def create_student(
        req: CreateStudentRequest,
        user_id: int = Depends(get_user_id),
        db: AsyncSession = Depends(get_db),
):
    parent = await crud_users.get(db, user_id)
    if not parent:
        raise HTTPException(status_code=404, detail="User not found")

    student = await crud_students.create(
        db,
        parent_user_id=parent.id,
        name=req.name,
        age=req.age,
        avatar_url=req.avatar_url,
    )
    await db.commit()
    return _student_out(student)
