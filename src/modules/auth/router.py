"""
Auth Endpoints

- POST  /api/v1/auth/register - Create an account
- POST  /api/v1/auth/login    - Exchange credentials for a bearer token
- GET   /api/v1/auth/me       - Current user profile
- PATCH /api/v1/auth/me       - Update own profile
"""
from fastapi import APIRouter, status

from src.modules.auth.dependencies import AuthServiceDep, CurrentUser
from src.modules.auth.schemas import (
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    Token,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
)
async def register(data: RegisterRequest, service: AuthServiceDep) -> UserResponse:
    user = await service.register(data)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=Token, summary="Login")
async def login(data: LoginRequest, service: AuthServiceDep) -> Token:
    """Returns a bearer token for valid credentials, 401 otherwise."""
    return await service.login(data)


@router.get("/me", response_model=UserResponse, summary="Current user")
async def get_me(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse, summary="Update profile")
async def update_me(
    data: ProfileUpdateRequest,
    current_user: CurrentUser,
    service: AuthServiceDep,
) -> UserResponse:
    user = await service.update_profile(current_user.id, data)
    return UserResponse.model_validate(user)
