"""
导入所有 ORM 模型，确保关系映射（User <-> Post <-> Comment）在首次查询前
完成配置。应用入口、Alembic 和测试都从这里导入。
"""
from app.modules.users.models import User
from app.modules.posts.models import Post, PostLike, PostStatus
from app.modules.comments.models import Comment

__all__ = ["User", "Post", "PostLike", "PostStatus", "Comment"]
