from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import time
import json
from typing import Callable, Dict, Any
from loguru import logger
import uuid

from app.core.logging import request_id_ctx

SENSITIVE_FIELDS = (
    "password", "token", "secret", "credential", "pwd", "auth", "key"
)


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """
    请求响应记录中间件

    为每个请求生成 request_id（写入日志上下文和 X-Request-ID 响应头），
    记录方法、路径、状态码和处理时间。JSON 请求体中的敏感字段会被过滤。
    """
    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = True,
        max_body_length: int = 1024,
        exclude_paths: list[str] = None,
    ):
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_length = max_body_length
        self.exclude_paths = exclude_paths or ["/docs", "/redoc", "/openapi.json", "/health"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)

        try:
            if self._should_skip_logging(request):
                return await call_next(request)

            start_time = time.time()
            request_info = await self._collect_request_info(request)

            try:
                response = await call_next(request)
            except Exception as e:
                duration = round(time.time() - start_time, 3)
                logger.error(
                    f"{request_info['method']} {request_info['path']} 处理失败 "
                    f"({duration}s): {type(e).__name__}: {e}"
                )
                raise

            duration = round(time.time() - start_time, 3)
            self._log_request_response(request_info, response.status_code, duration)

            response.headers["X-Process-Time"] = str(duration)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_ctx.reset(token)

    def _should_skip_logging(self, request: Request) -> bool:
        path = request.url.path
        for excluded_path in self.exclude_paths:
            if excluded_path.endswith('*'):
                if path.startswith(excluded_path[:-1]):
                    return True
            elif path == excluded_path:
                return True
        return False

    async def _collect_request_info(self, request: Request) -> Dict[str, Any]:
        info = {
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client": request.client.host if request.client else None,
        }
        if self.log_request_body and request.method in ["POST", "PUT", "PATCH"]:
            info["body"] = await self._get_request_body(request)
        return info

    async def _get_request_body(self, request: Request) -> str:
        content_type = request.headers.get("content-type", "")
        # 上传文件不读入日志
        if content_type.startswith("multipart/form-data"):
            return "[Multipart form data]"

        body = await request.body()
        if not body:
            return ""

        if content_type.startswith("application/json"):
            try:
                json_body = json.loads(body)
            except json.JSONDecodeError:
                return f"[Invalid JSON data, length: {len(body)} bytes]"
            self._filter_sensitive_data(json_body)
            return self._truncate_body(json.dumps(json_body, ensure_ascii=False))

        return f"[Body, length: {len(body)} bytes]"

    def _truncate_body(self, body: str) -> str:
        if len(body) > self.max_body_length:
            return body[:self.max_body_length] + f"... [truncated, total length: {len(body)} chars]"
        return body

    def _filter_sensitive_data(self, data: Any) -> None:
        if isinstance(data, dict):
            for key in list(data.keys()):
                if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
                    data[key] = "[FILTERED]"
                elif isinstance(data[key], (dict, list)):
                    self._filter_sensitive_data(data[key])
        elif isinstance(data, list):
            for item in data:
                self._filter_sensitive_data(item)

    def _log_request_response(self, request_info: Dict[str, Any], status_code: int, duration: float) -> None:
        message = f"{request_info['method']} {request_info['path']} -> {status_code} ({duration}s)"
        if request_info["query_params"]:
            message += f" query={json.dumps(request_info['query_params'], ensure_ascii=False)}"
        if request_info.get("body"):
            message += f" body={request_info['body']}"

        if status_code >= 500:
            logger.error(message)
        elif status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)
