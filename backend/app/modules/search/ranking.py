from app.modules.search.schemas import SearchResult

EXACT_MATCH_SCORE = 100
PREFIX_MATCH_SCORE = 50
SUBSTRING_MATCH_SCORE = 25
LIKE_WEIGHT = 0.1
VIEW_WEIGHT = 0.01


def calculate_relevance(item: SearchResult, query: str) -> float:
    """
    计算搜索结果的相关度

    标题（用户为姓名）按最强的一种匹配计分：完全相同 100，前缀 50，包含 25；
    只在内容或邮箱中匹配的结果得 0 分。帖子再加上 likes * 0.1 + views * 0.01。
    """
    query_lower = query.strip().lower()
    title_lower = item.title.lower()

    score = 0.0
    if title_lower == query_lower:
        score = EXACT_MATCH_SCORE
    elif title_lower.startswith(query_lower):
        score = PREFIX_MATCH_SCORE
    elif query_lower in title_lower:
        score = SUBSTRING_MATCH_SCORE

    if item.type == "post":
        score += (item.likes or 0) * LIKE_WEIGHT
        score += (item.views or 0) * VIEW_WEIGHT

    return round(score, 6)
