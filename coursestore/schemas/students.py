from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CreateStudentRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    age: Optional[int] = Field(default=None, ge=0, le=120)
    avatar_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str):
        if not value or not value.strip():
            raise ValueError("Student name cannot be empty")
        return value.strip()


class StudentResponse(BaseModel):
    id: int
    parent_user_id: int
    name: str
    age: Optional[int] = None
    avatar_url: Optional[str] = None
    created_at: str


class StudentSummary(BaseModel):
    id: int
    name: str
    age: Optional[int] = None
    avatar_url: Optional[str] = None
    courses_enrolled: int
