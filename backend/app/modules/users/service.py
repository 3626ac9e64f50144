import logging
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.users.models import User
from app.modules.users.schemas import LoginRequest, Token, UserCreate
from app.modules.users.repository import crud_user
from app.core.security import verify_password, create_access_token
from app.core.exceptions import InvalidCredentialsError, UserNotFoundError

logger = logging.getLogger(__name__)


class UserService:
    """注册、登录与用户查询"""

    async def register(self, db: AsyncSession, user_in: UserCreate) -> User:
        user = await crud_user.create(db, obj_in=user_in)
        logger.info(f"新用户注册: {user.id}")
        return user

    async def login(self, db: AsyncSession, login_data: LoginRequest) -> Token:
        user = await crud_user.get_by_email(db, email=login_data.email)
        if not user or not verify_password(login_data.password, user.hashed_password):
            raise InvalidCredentialsError()

        access_token, expires_at = create_access_token(subject=str(user.id))
        return Token(access_token=access_token, token_type="bearer", expires_at=expires_at)

    async def get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await crud_user.get(db, id=user_id)
        if not user:
            raise UserNotFoundError()
        return user


user_service = UserService()
