"""User endpoints."""

from typing import List

from fastapi import APIRouter, Depends, status

from changegate.api.deps import get_user_directory
from changegate.api.schemas.users import UserCreate, UserResponse
from changegate.core.errors import NotFoundError
from changegate.services.users import UserDirectory

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserResponse])
def list_users(users: UserDirectory = Depends(get_user_directory)):
    return [UserResponse.model_validate(u) for u in users.list_users()]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(body: UserCreate, users: UserDirectory = Depends(get_user_directory)):
    user = users.create_user(body.username, body.role, email=body.email)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, users: UserDirectory = Depends(get_user_directory)):
    user = users.find_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User not found: {user_id}")
    return UserResponse.model_validate(user)
