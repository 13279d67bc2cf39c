"""
Auth Module - Business Logic Service
Registration, credential login and profile management.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, NotFoundError, UnauthorizedError
from src.core.logging import get_logger
from src.core.security import create_access_token, get_password_hash, verify_password
from src.modules.auth.models import User
from src.modules.auth.schemas import (
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    Token,
)

logger = get_logger(__name__)


class AuthService:
    """Authentication and user service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate user by email and password."""
        user = await self.get_user_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    async def login(self, request: LoginRequest) -> Token:
        """Login and return JWT token."""
        user = await self.authenticate(request.email, request.password)
        if not user:
            raise UnauthorizedError("Invalid email or password")

        if not user.is_active:
            raise UnauthorizedError("User account is disabled")

        user.last_login = datetime.now(timezone.utc)
        await self.db.commit()

        token = create_access_token(
            subject=str(user.id),
            extra_claims={"is_admin": user.is_admin},
        )

        logger.info("User logged in", user_id=str(user.id), email=user.email)
        return Token(access_token=token)

    async def register(self, request: RegisterRequest) -> User:
        """Register a new user."""
        existing = await self.get_user_by_email(request.email)
        if existing:
            raise ConflictError(f"User with email {request.email} already exists")

        user = User(
            email=request.email.lower(),
            hashed_password=get_password_hash(request.password),
            full_name=request.full_name,
            phone=request.phone,
            language=request.language,
            is_active=True,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("User registered", user_id=str(user.id), email=user.email)
        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def update_profile(self, user_id: uuid.UUID, data: ProfileUpdateRequest) -> User:
        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Profile updated", user_id=str(user.id))
        return user
