from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """
    所有对外 JSON 模型的基类

    字段在 Python 侧使用 snake_case，序列化为 camelCase（authorId、totalPages），
    请求体两种写法都接受。
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Page(CamelModel, Generic[T]):
    """分页响应：{items, total, page, limit, totalPages}"""
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int

