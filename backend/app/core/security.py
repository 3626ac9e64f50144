from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from jose import jwt, JWTError # type: ignore
from jose.exceptions import ExpiredSignatureError  # type: ignore
from passlib.context import CryptContext # type: ignore
from app.core.config import settings
from app.infrastructure.utils.common import get_current_time

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access_token"


def create_access_token(subject: str | Any, expires_delta: timedelta | None = None) -> Tuple[str, datetime]:
    """
    创建访问令牌

    Args:
        subject: 令牌主题（用户ID）
        expires_delta: 过期时间增量，未提供时使用 ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        (JWT令牌, 过期时间)

    Raises:
        ValueError: 如果令牌创建失败
    """
    try:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.security.ACCESS_TOKEN_EXPIRE_MINUTES)
        expire = get_current_time() + expires_delta

        to_encode: Dict[str, Any] = {
            "exp": expire,
            "sub": str(subject),
            "iat": get_current_time(),
            "type": ACCESS_TOKEN_TYPE,
            "jti": str(uuid4()),
        }

        encoded_jwt = jwt.encode(
            to_encode,
            settings.security.SECRET_KEY,
            algorithm=settings.security.ALGORITHM
        )
        return encoded_jwt, expire
    except Exception as e:
        raise ValueError(f"Error creating access token: {str(e)}")


def verify_token(token: str) -> Tuple[bool, Optional[Dict[str, Any]], Optional[str]]:
    """
    验证JWT令牌

    Returns:
        (是否有效, 解码后的payload或None, 错误类型或None)
    """
    try:
        payload = jwt.decode(
            token,
            settings.security.SECRET_KEY,
            algorithms=[settings.security.ALGORITHM],
        )
        return True, payload, None
    except ExpiredSignatureError:
        return False, None, "expired"
    except JWTError:
        return False, None, "invalid"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
