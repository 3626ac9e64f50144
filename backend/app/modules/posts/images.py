import time
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from fastapi import UploadFile

from app.constant.constants import ErrorMessages
from app.core.config import settings
from app.core.exceptions import InvalidUploadError

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}


@dataclass
class ImageUpload:
    """已读入内存的图片上传"""
    filename: str
    content_type: str
    data: bytes

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[-1].lower()

    @property
    def size(self) -> int:
        return len(self.data)


async def read_upload(file: Optional[UploadFile]) -> Optional[ImageUpload]:
    """把 multipart 文件读成 ImageUpload；未提供文件时返回 None"""
    if file is None or not file.filename:
        return None
    # 多读一个字节即可判断是否超限
    data = await file.read(settings.storage.MAX_IMAGE_SIZE + 1)
    return ImageUpload(
        filename=file.filename,
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )


def validate_image(image: Optional[ImageUpload]) -> ImageUpload:
    """
    校验图片上传

    Raises:
        InvalidUploadError: 缺少文件、类型不允许或超过大小限制
    """
    if image is None or not image.data:
        raise InvalidUploadError(ErrorMessages.NO_FILE_UPLOADED)
    if (
        image.content_type not in settings.storage.ALLOWED_IMAGE_TYPES
        or image.extension not in ALLOWED_IMAGE_EXTENSIONS
    ):
        raise InvalidUploadError(ErrorMessages.INVALID_IMAGE_TYPE)
    if image.size > settings.storage.MAX_IMAGE_SIZE:
        raise InvalidUploadError(ErrorMessages.IMAGE_TOO_LARGE)
    return image


def generate_image_key(filename: str) -> str:
    """post-<毫秒时间戳>-<uuid4>.<扩展名>"""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"post-{int(time.time() * 1000)}-{uuid4()}.{extension}"
