from fastapi import APIRouter, Depends

from taskboard.auth import get_current_user, issue_session
from taskboard.models.users import AuthResponse, RegisterRequest, UpdateProfileRequest, User
from taskboard.services import users as users_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", status_code=201)
def register(request: RegisterRequest) -> AuthResponse:
    user = users_service.create_user(request.name, request.email, request.password)
    return issue_session(user)


@router.get("/me")
def get_me(user: User = Depends(get_current_user)) -> User:
    return user


@router.patch("/me")
def update_me(request: UpdateProfileRequest, user: User = Depends(get_current_user)) -> User:
    return users_service.update_profile(user.id, request.name)
