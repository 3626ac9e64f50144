from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from typing import Optional
from uuid import UUID

from app.modules.users.models import User
from app.modules.users.schemas import UserCreate
from app.core.security import get_password_hash
from app.core.exceptions import EmailAlreadyRegisteredError


class CRUDUser:
    async def get(self, db: AsyncSession, id: UUID) -> Optional[User]:
        """获取指定ID的用户"""
        result = await db.execute(select(User).filter(User.id == id))
        return result.scalar_one_or_none()

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        """通过邮箱获取用户"""
        result = await db.execute(select(User).filter(User.email == email))
        return result.scalar_one_or_none()

    async def create(self, db: AsyncSession, obj_in: UserCreate) -> User:
        """
        创建新用户

        抛出:
            EmailAlreadyRegisteredError: 邮箱已存在（包括并发注册时唯一约束冲突）
        """
        existing = await self.get_by_email(db, email=obj_in.email)
        if existing:
            raise EmailAlreadyRegisteredError()

        db_obj = User(
            name=obj_in.name,
            email=obj_in.email,
            hashed_password=get_password_hash(obj_in.password),
            avatar=obj_in.avatar,
        )
        try:
            db.add(db_obj)
            await db.commit()
            await db.refresh(db_obj)
            return db_obj
        except IntegrityError:
            await db.rollback()
            raise EmailAlreadyRegisteredError()


crud_user = CRUDUser()
