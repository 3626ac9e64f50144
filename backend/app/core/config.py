import os
from typing import Any, List, Optional
from pydantic import PostgresDsn, field_validator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_env_file() -> str:
    """动态选择环境文件"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    if environment == "production":
        return ".env.prod"
    else:
        return ".env.dev"


ENV_FILE = get_env_file()


class PostgresSettings(BaseSettings):
    """PostgreSQL 数据库配置"""
    HOST: str
    USER: str
    PASSWORD: str
    DB: str
    PORT: str = "5432"
    DATABASE_URL: Optional[PostgresDsn] = None

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: Any) -> Any:
        if isinstance(v, str):
            return v

        fields = info.data
        if not all(fields.get(key) for key in ["USER", "PASSWORD", "HOST", "DB"]):
            raise ValueError("Database configuration is incomplete.")

        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=fields.get("USER"),
            password=fields.get("PASSWORD"),
            host=fields.get("HOST"),
            port=int(fields.get("PORT", "5432")),
            path=fields.get("DB", "")
        )

    @property
    def SQLALCHEMY_DATABASE_URL(self) -> str:
        """获取 SQLAlchemy 数据库 URI"""
        if not self.DATABASE_URL:
            raise ValueError("Database URI is not set")
        return str(self.DATABASE_URL)

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class SecuritySettings(BaseSettings):
    """安全相关配置"""
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALGORITHM: str = "HS256"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class LoggingSettings(BaseSettings):
    """日志配置"""
    LEVEL: str = "INFO"
    JSON: bool = False
    FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class StorageSettings(BaseSettings):
    """帖子图片对象存储（Supabase Storage）配置"""
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    SUPABASE_ANON_KEY: str = ""
    BUCKET: str = "posts"
    REQUEST_TIMEOUT: int = 30
    MAX_IMAGE_SIZE: int = 5 * 1024 * 1024
    ALLOWED_IMAGE_TYPES: List[str] = [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
    ]

    @property
    def API_KEY(self) -> str:
        """优先使用 service key，其次 anon key"""
        return self.SUPABASE_SERVICE_KEY or self.SUPABASE_ANON_KEY

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


class Settings(BaseSettings):
    """主配置类"""
    # 基本配置
    PROJECT_NAME: str = "Blog Backend"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # 服务配置
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:3001"]

    # 子配置
    postgres: PostgresSettings = PostgresSettings()
    security: SecuritySettings = SecuritySettings()
    logging: LoggingSettings = LoggingSettings()
    storage: StorageSettings = StorageSettings()

    # 数据库日志
    DB_ECHO_LOG: bool = False

    # 列表接口默认值
    POPULAR_POSTS_LIMIT: int = Field(default=5)
    RECENT_POSTS_LIMIT: int = Field(default=5)
    RECENT_COMMENTS_LIMIT: int = Field(default=10)

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=[ENV_FILE],
        env_file_encoding="utf-8",
        extra="allow"
    )


settings = Settings()
