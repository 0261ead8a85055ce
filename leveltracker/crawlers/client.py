"""Async Battle.net client for character profile lookups."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from leveltracker.config.settings import settings
from leveltracker.crawlers.contracts import FetchResult, FetchState, ProfileContract

logger = logging.getLogger(__name__)

_REDACTED_VALUE = "***REDACTED***"
_SENSITIVE_KEYS = (
    "authorization",
    "token",
    "secret",
    "password",
    "client_id",
)
_PAYLOAD_KEYS = ("body", "raw", "payload", "response")
_TOKEN_PATTERNS = (
    re.compile(r"(?i)(bearer\s+)[^\s,;]+"),
    re.compile(r"(?i)(basic\s+)[^\s,;]+"),
    re.compile(r"(?i)(access_token=)[^&\s]+"),
    re.compile(r"(?i)(secret\s*[=:]\s*)[^\s,;]+"),
)


def sanitize_for_log(value: Any, *, key: Optional[str] = None) -> Any:
    """Return a recursively sanitized copy of log payloads."""

    if isinstance(value, dict):
        sanitized: dict[str, Any] = {}
        for raw_key, raw_value in value.items():
            field = str(raw_key)
            if _contains_keyword(field, _SENSITIVE_KEYS):
                sanitized[field] = _REDACTED_VALUE
                continue
            sanitized[field] = sanitize_for_log(raw_value, key=field)
        return sanitized

    if isinstance(value, (list, tuple, set)):
        return [sanitize_for_log(item, key=key) for item in value]

    if isinstance(value, str):
        redacted = _redact_text(value)
        if key and _contains_keyword(key, _PAYLOAD_KEYS):
            return _redact_payload(redacted)
        return redacted

    return value


def sanitize_log_extra(**kwargs: Any) -> dict[str, Any]:
    """Helper for `extra=` payloads in structured logging."""

    return {key: sanitize_for_log(value, key=key) for key, value in kwargs.items()}


def _contains_keyword(field_name: str, keywords: tuple[str, ...]) -> bool:
    lowered = field_name.lower()
    return any(keyword in lowered for keyword in keywords)


def _redact_payload(raw: str) -> str:
    if not raw.strip():
        return ""
    return f"<redacted payload ({len(raw)} chars)>"


def _redact_text(raw: str) -> str:
    redacted = raw
    for pattern in _TOKEN_PATTERNS:
        redacted = pattern.sub(rf"\1{_REDACTED_VALUE}", redacted)
    return redacted


class TokenError(RuntimeError):
    """Raised when client credentials are missing or rejected."""


class _RateLimitRetryableError(Exception):
    """Retryable rate-limit signal for tenacity."""


class BattleNetClient:
    """Profile API client holding one bearer token for the whole run."""

    TOKEN_URL = "https://{region}.battle.net/oauth/token"
    API_URL = "https://{region}.api.blizzard.com"
    PROFILE_PATH = "/profile/wow/character/{realm}/{name}"

    def __init__(
        self,
        *,
        region: str = "us",
        locale: str = "en_US",
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base_seconds: Optional[float] = None,
        backoff_max_seconds: Optional[float] = None,
        transport: Optional[Any] = None,
    ) -> None:
        self._region = region
        self._locale = locale
        self._client_id = client_id or settings.BNET_CLIENT_ID
        self._client_secret = client_secret or settings.BNET_CLIENT_SECRET
        self._timeout_seconds = timeout_seconds or settings.BNET_TIMEOUT_SECONDS
        self._max_retries = max_retries or settings.BNET_MAX_RETRIES
        self._backoff_base_seconds = backoff_base_seconds or settings.BNET_BACKOFF_BASE_SECONDS
        self._backoff_max_seconds = backoff_max_seconds or settings.BNET_BACKOFF_MAX_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._access_token: Optional[str] = None

        if not self._client_id or not self._client_secret:
            raise TokenError("Missing BNET_CLIENT_ID or BNET_CLIENT_SECRET env vars.")

    async def __aenter__(self) -> "BattleNetClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def authenticate(self) -> str:
        """Exchange client credentials for a bearer token (fatal on failure)."""
        if self._access_token:
            return self._access_token

        client = await self._ensure_client()
        try:
            response = await client.post(
                self.TOKEN_URL.format(region=self._region),
                auth=(self._client_id, self._client_secret),
                data={"grant_type": "client_credentials"},
            )
        except httpx.HTTPError as exc:
            raise TokenError(f"Token request failed: {exc}") from exc

        if response.status_code != 200:
            raise TokenError(f"Token failed: {response.status_code} {response.text}")

        token = response.json().get("access_token")
        if not isinstance(token, str) or not token:
            raise TokenError("Token response did not include an access_token")

        self._access_token = token
        logger.info("Obtained Battle.net access token", extra=sanitize_log_extra(region=self._region))
        return token

    async def get_character_profile(self, realm: str, name: str, namespace: str) -> ProfileContract:
        path = self.PROFILE_PATH.format(realm=realm, name=name.lower())
        return await self._request(path, params={"namespace": namespace, "locale": self._locale})

    async def _request(self, path: str, *, params: Optional[dict[str, Any]] = None) -> FetchResult[Any]:
        client = await self._ensure_client()
        token = await self.authenticate()
        headers = {"Authorization": f"Bearer {token}"}

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_retries),
                wait=wait_exponential(multiplier=self._backoff_base_seconds, max=self._backoff_max_seconds),
                retry=retry_if_exception_type(_RateLimitRetryableError),
                reraise=True,
            ):
                with attempt:
                    response = await client.get(path, params=params, headers=headers)

                    if response.status_code == 429:
                        wait_seconds = self._compute_rate_limit_wait(response.headers)
                        logger.warning(
                            "Battle.net API rate limit encountered",
                            extra=sanitize_log_extra(path=path, params=params, retry_after_seconds=wait_seconds),
                        )
                        if wait_seconds > 0:
                            await asyncio.sleep(wait_seconds)
                        raise _RateLimitRetryableError("Battle.net rate limit encountered (429)")

                    if not response.is_success:
                        return FetchResult(
                            state=FetchState.FAILED,
                            status_code=response.status_code,
                            error=response.text,
                        )

                    payload = response.json()
                    if not payload:
                        return FetchResult(state=FetchState.EMPTY, data=payload, status_code=response.status_code)
                    return FetchResult(state=FetchState.OK, data=payload, status_code=response.status_code)
        except _RateLimitRetryableError as exc:
            logger.warning(
                "Battle.net request failed after rate-limit retries",
                extra=sanitize_log_extra(path=path, params=params, error=str(exc)),
            )
            return FetchResult(state=FetchState.FAILED, error=str(exc), status_code=429)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        self._client = httpx.AsyncClient(
            base_url=self.API_URL.format(region=self._region),
            headers={"User-Agent": settings.USER_AGENT, "Accept": "application/json"},
            timeout=self._timeout_seconds,
            transport=self._transport,
        )
        return self._client

    def _compute_rate_limit_wait(self, headers: httpx.Headers) -> float:
        retry_after = headers.get("retry-after")
        if retry_after is not None:
            try:
                return max(float(retry_after), 0.0)
            except ValueError:
                pass
        return self._backoff_base_seconds
