from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from app.core.exceptions import InvalidCredentialsError, UserNotFoundError
from app.core.security import get_password_hash, verify_token
from app.modules.users import service as user_service_module
from app.modules.users.schemas import LoginRequest, Token
from app.modules.users.service import user_service


@pytest.fixture()
def stored_user(alice):
    user = alice
    user.hashed_password = get_password_hash("correct-horse")
    return user


@pytest.mark.asyncio
async def test_login_returns_access_token_for_user_id(monkeypatch, stored_user):
    monkeypatch.setattr(
        user_service_module.crud_user, "get_by_email", AsyncMock(return_value=stored_user)
    )

    token = await user_service.login(None, LoginRequest(email=stored_user.email, password="correct-horse"))

    assert isinstance(token, Token)
    is_valid, payload, _ = verify_token(token.access_token)
    assert is_valid
    assert payload["sub"] == str(stored_user.id)
    assert token.model_dump(by_alias=True).keys() >= {"accessToken", "tokenType", "expiresAt"}


@pytest.mark.asyncio
@pytest.mark.parametrize("found, password", [(True, "wrong"), (False, "correct-horse")])
async def test_login_rejects_bad_credentials(monkeypatch, stored_user, found, password):
    monkeypatch.setattr(
        user_service_module.crud_user,
        "get_by_email",
        AsyncMock(return_value=stored_user if found else None),
    )

    with pytest.raises(InvalidCredentialsError):
        await user_service.login(None, LoginRequest(email=stored_user.email, password=password))


@pytest.mark.asyncio
async def test_get_missing_user_raises_not_found(monkeypatch):
    get = AsyncMock(return_value=None)
    monkeypatch.setattr(user_service_module.crud_user, "get", get)
    user_id = uuid4()

    with pytest.raises(UserNotFoundError):
        await user_service.get_user(None, user_id)
    get.assert_awaited_once_with(None, id=user_id)
