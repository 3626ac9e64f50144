from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.postgres_base import get_async_session
from app.infrastructure.utils.common import handle_error
from app.api.dependencies import get_current_user
from app.modules.users.models import User
from app.modules.users.schemas import LoginRequest, Token, UserCreate, UserResponse
from app.modules.users.service import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_async_session),
):
    """注册新用户"""
    try:
        return await user_service.register(db, user_in)
    except Exception as e:
        raise handle_error(e)


@router.post("/login", response_model=Token)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """邮箱密码登录，返回访问令牌"""
    try:
        return await user_service.login(db, login_data)
    except Exception as e:
        raise handle_error(e)


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user
