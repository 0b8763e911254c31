"""
Проверка Google ID-токена через tokeninfo endpoint.

Один исходящий запрос на вызов, без ретраев: ошибка провайдера
сразу поднимается вызывающему. Таймаут задаётся GOOGLE_HTTP_TIMEOUT,
отмена вызывающей корутины прерывает и запрос.
"""
import logging
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import (
    IdentityProviderUnavailableError,
    InvalidAssertionError,
    MalformedProviderResponseError,
)
from app.schemas.auth import IdentityClaims

logger = logging.getLogger(__name__)


class GoogleTokenValidator:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        tokeninfo_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client_id: Optional[str] = None,
    ):
        self._client = client
        self.tokeninfo_url = tokeninfo_url or settings.GOOGLE_TOKENINFO_URL
        self.timeout = timeout if timeout is not None else settings.GOOGLE_HTTP_TIMEOUT
        self.client_id = client_id if client_id is not None else settings.GOOGLE_CLIENT_ID

    async def _fetch(self, identity_token: str) -> httpx.Response:
        params = {"id_token": identity_token}
        if self._client is not None:
            return await self._client.get(self.tokeninfo_url, params=params, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(self.tokeninfo_url, params=params)

    async def verify(self, identity_token: str) -> IdentityClaims:
        try:
            response = await self._fetch(identity_token)
        except httpx.HTTPError as exc:
            logger.warning("Google tokeninfo недоступен: %s", exc)
            raise IdentityProviderUnavailableError()

        if not response.is_success:
            logger.warning("Google token validation failed with status: %s", response.status_code)
            raise InvalidAssertionError()

        try:
            payload = response.json()
        except ValueError:
            raise MalformedProviderResponseError()

        claims = self._parse_claims(payload)

        if self.client_id and payload.get("aud") != self.client_id:
            logger.warning("Google токен выпущен для другого клиента: %s", payload.get("aud"))
            raise InvalidAssertionError("Google токен выпущен для другого приложения")

        return claims

    @staticmethod
    def _parse_claims(payload: Any) -> IdentityClaims:
        if not isinstance(payload, dict):
            raise MalformedProviderResponseError()

        subject_id = payload.get("sub")
        email = payload.get("email")
        if not subject_id or not email:
            raise MalformedProviderResponseError("В ответе Google нет sub/email")

        return IdentityClaims(
            subject_id=str(subject_id),
            email=str(email),
            name=str(payload.get("name") or ""),
            picture_url=payload.get("picture") or None,
            email_verified=_parse_bool(payload.get("email_verified")),
        )


def _parse_bool(value: Any) -> bool:
    # tokeninfo отдаёт "true"/"false" строкой
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true"


google_token_validator = GoogleTokenValidator()
