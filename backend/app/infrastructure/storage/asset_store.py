"""
帖子图片的对象存储

AssetStore 定义帖子生命周期管理所需的最小接口；SupabaseAssetStore 通过
Supabase Storage 的 REST 接口实现它。实例在应用生命周期内创建一次，
再显式注入到 PostService，不使用全局客户端。
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote, unquote, urlparse

import aiohttp

from app.core.config import StorageSettings, settings
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class AssetStore(ABC):
    """对象存储接口：按 key 上传、删除，并生成公开访问 URL"""

    @abstractmethod
    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """上传对象并返回其公开 URL"""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """删除对象，失败时抛出 StorageError"""

    @abstractmethod
    def public_url(self, key: str) -> str:
        ...

    def key_from_url(self, url: str) -> Optional[str]:
        """
        从公开 URL 中取出对象 key

        URL 形如 https://<project>.supabase.co/storage/v1/object/public/<bucket>/<key>，
        key 为最后一段路径。
        """
        if not url:
            return None
        path = urlparse(url).path
        key = unquote(path.rstrip("/").rsplit("/", 1)[-1])
        return key or None


class SupabaseAssetStore(AssetStore):
    """Supabase Storage REST 客户端"""

    def __init__(self, config: StorageSettings | None = None):
        self.config = config or settings.storage
        self.base_url = self.config.SUPABASE_URL.rstrip("/")
        self.bucket = self.config.BUCKET
        self._session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.REQUEST_TIMEOUT),
                headers={
                    "Authorization": f"Bearer {self.config.API_KEY}",
                    "apikey": self.config.API_KEY,
                },
            )
            logger.info(f"对象存储客户端已初始化: bucket={self.bucket}")

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("对象存储客户端已关闭")
        self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            await self.initialize()
        return self._session

    def _object_url(self, key: str = "") -> str:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"
        if key:
            url = f"{url}/{quote(key)}"
        return url

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(key)}"

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        session = await self._get_session()
        try:
            async with session.post(
                self._object_url(key),
                data=data,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            ) as response:
                if response.status >= 400:
                    message = await self._error_message(response)
                    logger.error(f"图片上传失败 key={key} status={response.status}: {message}")
                    raise StorageError(f"图片上传失败: {message}")
        except aiohttp.ClientError as e:
            logger.error(f"图片上传请求异常 key={key}: {e}")
            raise StorageError(f"图片上传失败: {e}") from e

        logger.info(f"图片已上传: {key}")
        return self.public_url(key)

    async def delete(self, key: str) -> None:
        session = await self._get_session()
        try:
            async with session.delete(
                self._object_url(),
                json={"prefixes": [key]},
            ) as response:
                if response.status >= 400:
                    message = await self._error_message(response)
                    raise StorageError(f"图片删除失败: {message}")
        except aiohttp.ClientError as e:
            raise StorageError(f"图片删除失败: {e}") from e

        logger.info(f"图片已删除: {key}")

    @staticmethod
    async def _error_message(response: aiohttp.ClientResponse) -> str:
        try:
            payload = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return await response.text()
        if isinstance(payload, dict):
            return str(payload.get("message") or payload.get("error") or payload)
        return str(payload)
