import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api import router
from app.api.dependencies import get_search_service
from app.infrastructure.database.postgres_base import get_async_session
from app.infrastructure.utils.common import create_exception_handlers
from app.modules.search.schemas import SearchResponse


class RecordingSearchService:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.quick_limits = []
        self.params = None

    async def search(self, db, params):
        self.params = params
        if self.fail:
            raise ConnectionError("database unavailable")
        return SearchResponse(
            results=[], total=0, page=params.page, limit=params.limit, total_pages=0, query=params.q
        )

    async def suggestions(self, db, q):
        return []

    async def quick_search(self, q, limit):
        self.quick_limits.append(limit)
        return []


async def _no_session():
    yield None


def make_client(service) -> TestClient:
    test_app = FastAPI(exception_handlers=create_exception_handlers())
    test_app.include_router(router)
    test_app.dependency_overrides[get_async_session] = _no_session
    test_app.dependency_overrides[get_search_service] = lambda: service
    return TestClient(test_app)


def test_search_query_parameters_are_parsed():
    service = RecordingSearchService()
    client = make_client(service)

    response = client.get(
        "/v1/search",
        params={"q": "react", "type": "post", "page": 2, "limit": 5, "sortBy": "likes", "sortOrder": "ASC"},
    )

    assert response.status_code == 200
    assert response.json()["query"] == "react"
    assert response.json()["totalPages"] == 0
    assert service.params.type.value == "post"
    assert (service.params.sort_by, service.params.sort_order) == ("likes", "ASC")


@pytest.mark.parametrize(
    "params",
    [{"q": "x", "type": "comment"}, {"q": "x", "limit": 51}, {"q": "x", "sortBy": "views"}],
)
def test_search_rejects_invalid_parameters(params):
    client = make_client(RecordingSearchService())

    assert client.get("/v1/search", params=params).status_code == 422


def test_search_failure_is_internal_error():
    client = make_client(RecordingSearchService(fail=True))

    response = client.get("/v1/search", params={"q": "react"})

    assert response.status_code == 500
    assert response.json()["detail"] == "搜索失败"


@pytest.mark.parametrize("requested, expected", [(100, 20), (0, 1), (-3, 1), (7, 7)])
def test_quick_search_limit_is_clamped(requested, expected):
    service = RecordingSearchService()
    client = make_client(service)

    response = client.get("/v1/search/quick", params={"q": "eve", "limit": requested})

    assert response.status_code == 200
    assert service.quick_limits == [expected]
