"""
E2E тесты полного цикла аутентификации.

Сценарии:
1. Вход через Google → GET /me → verify-token → refresh → logout
2. Ротация refresh-токена: старый токен аннулируется после refresh
3. Повторный вход того же GoogleId не создаёт второго пользователя
4. Деактивация администратором закрывает и access, и refresh

Стратегия: полный HTTP-стек через httpx.AsyncClient поверх SQLite,
замокан только Google tokeninfo (mock_verifier).
"""

import pytest

from app.schemas.auth import IdentityClaims
from tests.conftest import make_auth_headers

pytestmark = pytest.mark.e2e


def google_says(mock_verifier, subject_id="g-e2e", email="e2e@gmail.com", name="E2E User"):
    mock_verifier.verify.return_value = IdentityClaims(
        subject_id=subject_id, email=email, name=name, email_verified=True
    )


async def login(db_client, token="google-id-token"):
    response = await db_client.post("/api/v1/auth/login", json={"identityToken": token})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}


@pytest.mark.asyncio
async def test_full_login_me_refresh_logout_flow(db_client, mock_verifier):
    google_says(mock_verifier)

    # 1. Первый вход
    session = await login(db_client)
    assert session["isNewUser"] is True
    assert session["user"]["email"] == "e2e@gmail.com"

    # 2. /me и verify-token
    me = await db_client.get("/api/v1/auth/me", headers=bearer(session["accessToken"]))
    assert me.status_code == 200
    assert me.json()["googleId"] == "g-e2e"
    assert me.json()["lastLoginAt"] is not None

    verified = await db_client.get("/api/v1/auth/verify-token", headers=bearer(session["accessToken"]))
    assert verified.json()["userId"] == session["user"]["id"]

    # 3. Refresh выдаёт новую пару, старый refresh больше не работает
    refreshed = await db_client.post("/api/v1/auth/refresh", json={"refreshToken": session["refreshToken"]})
    assert refreshed.status_code == 200
    new_pair = refreshed.json()
    assert new_pair["refreshToken"] != session["refreshToken"]

    reused = await db_client.post("/api/v1/auth/refresh", json={"refreshToken": session["refreshToken"]})
    assert reused.status_code == 401

    # 4. Logout аннулирует и текущий refresh
    logout = await db_client.post("/api/v1/auth/logout", headers=bearer(new_pair["accessToken"]))
    assert logout.status_code == 200

    after_logout = await db_client.post("/api/v1/auth/refresh", json={"refreshToken": new_pair["refreshToken"]})
    assert after_logout.status_code == 401
    assert after_logout.json()["success"] is False


@pytest.mark.asyncio
async def test_repeated_login_reuses_user_and_tracks_profile_drift(db_client, mock_verifier):
    google_says(mock_verifier, name="Old Name")
    first = await login(db_client)

    google_says(mock_verifier, name="New Name")
    second = await login(db_client)

    assert second["isNewUser"] is False
    assert second["user"]["id"] == first["user"]["id"]
    assert second["user"]["name"] == "New Name"


@pytest.mark.asyncio
async def test_admin_created_user_is_linked_on_first_login(db_client, db_users, mock_verifier):
    created = await db_client.post(
        "/api/v1/users",
        json={"email": "invited@gmail.com", "name": "Invited"},
        headers=make_auth_headers(db_users["admin"]),
    )
    assert created.status_code == 201

    google_says(mock_verifier, subject_id="g-invited", email="invited@gmail.com", name="Invited")
    session = await login(db_client)

    assert session["isNewUser"] is False
    assert session["user"]["id"] == created.json()["id"]
    assert session["user"]["googleId"] == "g-invited"


@pytest.mark.asyncio
async def test_deactivation_blocks_access_and_refresh(db_client, db_users, mock_verifier):
    google_says(mock_verifier)
    session = await login(db_client)

    response = await db_client.delete(
        f"/api/v1/users/{session['user']['id']}", headers=make_auth_headers(db_users["admin"])
    )
    assert response.status_code == 200

    me = await db_client.get("/api/v1/auth/me", headers=bearer(session["accessToken"]))
    refresh = await db_client.post("/api/v1/auth/refresh", json={"refreshToken": session["refreshToken"]})
    relogin = await db_client.post("/api/v1/auth/login", json={"identityToken": "google-id-token"})

    assert me.status_code == 401
    assert refresh.status_code == 401
    assert relogin.status_code == 401
