from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict


class CourseDto(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    price: Decimal
