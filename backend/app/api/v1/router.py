from fastapi import APIRouter
from app.api.v1.endpoints import auth, users, drafts, posts, comments, search

# 创建主路由
router = APIRouter()

router.include_router(auth.router)
router.include_router(users.router)
# drafts 必须先于 posts，否则 /posts/drafts 会被 /posts/{post_id} 匹配
router.include_router(drafts.router)
router.include_router(posts.router)
router.include_router(comments.router)
router.include_router(search.router)
