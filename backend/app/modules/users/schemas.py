from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from app.schemas.common import CamelModel


class UserCreate(CamelModel):
    """注册用户时的模型"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    avatar: Optional[str] = Field(None, max_length=1000)


class LoginRequest(CamelModel):
    """登录请求模型"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: Optional[datetime] = None


class UserSummary(CamelModel):
    """嵌入在帖子、评论、搜索结果中的作者摘要"""
    id: UUID
    name: str
    avatar: Optional[str] = None


class UserResponse(UserSummary):
    """用户信息响应模型（不含密码）"""
    email: EmailStr
    created_at: datetime
    updated_at: datetime
