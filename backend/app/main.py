from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from app.core.config import settings
from app.api.middleware.logging import RequestResponseLoggingMiddleware
from app.api.middleware.auth import AuthMiddleware
from app.core.logging import setup_logging
from app.infrastructure.database import models  # noqa: F401  注册所有 ORM 模型
from app.infrastructure.storage.asset_store import SupabaseAssetStore
from app.infrastructure.utils.common import create_exception_handlers, get_current_time

# 配置日志系统
setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    asset_store = SupabaseAssetStore()
    await asset_store.initialize()
    app.state.asset_store = asset_store
    logger.info("应用启动成功")

    yield

    await asset_store.close()
    logger.info("应用关闭成功")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Blog backend: posts, drafts, comments, likes and search",
    version=settings.VERSION,
    root_path="/api",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    exception_handlers=create_exception_handlers(),
    lifespan=lifespan
)

# 中间件的执行顺序与添加顺序相反

# 1. 请求/响应日志记录中间件 (最后执行，最先完成)
app.add_middleware(
    RequestResponseLoggingMiddleware,
    log_request_body=True,
    max_body_length=4096,
    exclude_paths=["/docs", "/redoc", "/openapi.json", "/health"],
)

# 2. CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 3. JWT认证中间件（只验证携带的令牌，是否必须登录由接口依赖决定）
app.add_middleware(AuthMiddleware)


@app.get("/health")
async def health_check():
    """
    简单的健康检查端点
    - 无需认证
    - 无需数据库连接
    """
    return {
        "status": "ok",
        "service": "backend",
        "timestamp": get_current_time().isoformat()
    }

# 包含API路由
app.include_router(router)
