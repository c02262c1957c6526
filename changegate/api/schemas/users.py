from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    role: str = Field(..., min_length=1, max_length=50)
    email: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    username: str
    role: str
    email: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
