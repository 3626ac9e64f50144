from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from app.core.security import verify_token, ACCESS_TOKEN_TYPE


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": detail},
        headers={"WWW-Authenticate": "Bearer"}
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """
    JWT认证中间件

    公开接口（帖子列表、详情、搜索、评论列表）允许匿名访问，所以中间件只在
    请求携带 Authorization 头时验证令牌，并把载荷放入 request.state.user_payload。
    是否必须登录由各接口的依赖项决定。
    """

    async def dispatch(self, request: Request, call_next: Callable):
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return await call_next(request)

        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return _unauthorized("认证方案必须是Bearer")

        is_valid, payload, error_type = verify_token(parts[1])
        if not is_valid:
            if error_type == "expired":
                return _unauthorized("认证凭据已过期")
            return _unauthorized("无效的认证凭据")

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            return _unauthorized("令牌类型无效，API访问需要使用访问令牌")

        request.state.user_payload = payload
        return await call_next(request)
