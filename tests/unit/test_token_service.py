"""
Модульные тесты для TokenService.

Покрываемые методы:
- issue_access_token / decode_access_token / validate_access_token
- issue_refresh_token / hash_refresh_token
- extract_user_id
"""

import base64
from datetime import datetime, timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.exceptions import UnauthorizedError
from app.services.token_service import AUTH_PROVIDER, TokenService, token_service

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# issue_access_token / decode_access_token
# ---------------------------------------------------------------------------

def test_access_token_contains_identity_claims():
    """Access-токен содержит sub строкой, email, роль, jti и провайдера."""
    token = token_service.issue_access_token(42, "a@b.com", "user")
    claims = token_service.decode_access_token(token)

    assert claims["sub"] == "42"
    assert claims["email"] == "a@b.com"
    assert claims["role"] == "user"
    assert claims["iss"] == settings.JWT_ISSUER
    assert claims["aud"] == settings.JWT_AUDIENCE
    assert claims["auth_provider"] == AUTH_PROVIDER
    assert claims["jti"]


def test_access_tokens_have_unique_jti():
    first = jwt.get_unverified_claims(token_service.issue_access_token(1, "a@b.com", "user"))
    second = jwt.get_unverified_claims(token_service.issue_access_token(1, "a@b.com", "user"))
    assert first["jti"] != second["jti"]


def test_access_token_expiry_matches_settings():
    issued_at = datetime.utcnow().replace(microsecond=0)
    token = token_service.issue_access_token(1, "a@b.com", "user", issued_at=issued_at)
    claims = jwt.get_unverified_claims(token)
    assert claims["exp"] - claims["iat"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_validate_fresh_token_returns_true():
    token = token_service.issue_access_token(7, "a@b.com", "admin")
    assert token_service.validate_access_token(token) is True


def test_validate_token_signed_with_other_secret_returns_false():
    foreign = TokenService(secret_key="another-secret-key-of-sufficient-length")
    token = foreign.issue_access_token(7, "a@b.com", "user")
    assert token_service.validate_access_token(token) is False


def test_validate_expired_token_returns_false():
    issued_at = datetime.utcnow() - timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES + 1)
    token = token_service.issue_access_token(7, "a@b.com", "user", issued_at=issued_at)
    assert token_service.validate_access_token(token) is False


def test_validate_token_with_wrong_audience_returns_false():
    foreign = TokenService(audience="some-other-audience")
    token = foreign.issue_access_token(7, "a@b.com", "user")
    assert token_service.validate_access_token(token) is False


def test_validate_token_with_wrong_issuer_returns_false():
    foreign = TokenService(issuer="someone-else")
    token = foreign.issue_access_token(7, "a@b.com", "user")
    assert token_service.validate_access_token(token) is False


def test_decode_garbage_raises_unauthorized():
    with pytest.raises(UnauthorizedError) as exc_info:
        token_service.decode_access_token("not-a-jwt")
    assert exc_info.value.status_code == 401


# ---------------------------------------------------------------------------
# refresh-токены
# ---------------------------------------------------------------------------

def test_refresh_token_is_64_random_bytes_base64():
    token = TokenService.issue_refresh_token()
    assert len(base64.b64decode(token)) == 64


def test_refresh_tokens_are_unique():
    tokens = {TokenService.issue_refresh_token() for _ in range(50)}
    assert len(tokens) == 50


def test_refresh_token_hash_is_stable_sha256_hex():
    token = TokenService.issue_refresh_token()
    digest = TokenService.hash_refresh_token(token)
    assert digest == TokenService.hash_refresh_token(token)
    assert len(digest) == 64
    assert digest != token


def test_refresh_token_expiry_uses_days_setting():
    now = datetime.utcnow()
    assert token_service.refresh_token_expires_at(now) - now == timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


# ---------------------------------------------------------------------------
# extract_user_id
# ---------------------------------------------------------------------------

def test_extract_user_id_round_trip():
    token = token_service.issue_access_token(42, "a@b.com", "USER")
    assert TokenService.extract_user_id(token) == 42


def test_extract_user_id_ignores_signature():
    """Извлечение без проверки подписи: годится только для диагностики."""
    foreign = TokenService(secret_key="another-secret-key-of-sufficient-length")
    assert TokenService.extract_user_id(foreign.issue_access_token(9, "a@b.com", "user")) == 9


def test_extract_user_id_from_garbage_returns_zero():
    assert TokenService.extract_user_id("garbage") == 0
