"""Ordered namespace fallback for character profile lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Union

import httpx

from leveltracker.crawlers.client import sanitize_log_extra
from leveltracker.crawlers.contracts import FetchResult, FetchState

logger = logging.getLogger(__name__)

# A wrong namespace usually answers 403 or 404.
FALLBACK_STATUSES = frozenset({403, 404})
EXHAUSTED_STATUS = 404
EXHAUSTED_DETAIL = "Not found in provided namespaces"
FETCH_ERROR_STATUS = "fetch_error"


class AttemptState(str, Enum):
    TRYING = "trying"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"


@dataclass(slots=True)
class ProfileFetchOutcome:
    ok: bool
    namespace: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    status: Union[int, str, None] = None
    detail: Optional[str] = None


class NamespaceFallback:
    """State machine: trying(namespace_i) -> succeeded | failed_terminal."""

    def __init__(self, namespaces: Sequence[str]) -> None:
        self._namespaces = tuple(namespaces)
        self._index = 0
        self.state = AttemptState.TRYING if self._namespaces else AttemptState.FAILED_TERMINAL
        self.outcome = ProfileFetchOutcome(ok=False, status=EXHAUSTED_STATUS, detail=EXHAUSTED_DETAIL)

    @property
    def current_namespace(self) -> Optional[str]:
        if self.state != AttemptState.TRYING:
            return None
        return self._namespaces[self._index]

    def advance(self, result: FetchResult[Any]) -> AttemptState:
        if self.state != AttemptState.TRYING:
            raise RuntimeError(f"Cannot advance fallback in state {self.state.value}")

        namespace = self._namespaces[self._index]
        if result.state in (FetchState.OK, FetchState.EMPTY):
            self.state = AttemptState.SUCCEEDED
            data = result.data if isinstance(result.data, dict) else {}
            self.outcome = ProfileFetchOutcome(ok=True, namespace=namespace, data=data, status=result.status_code)
            return self.state

        if result.status_code in FALLBACK_STATUSES:
            self._index += 1
            if self._index >= len(self._namespaces):
                self.state = AttemptState.FAILED_TERMINAL
            return self.state

        self.state = AttemptState.FAILED_TERMINAL
        self.outcome = ProfileFetchOutcome(
            ok=False,
            namespace=namespace,
            status=result.status_code if result.status_code is not None else FETCH_ERROR_STATUS,
            detail=result.error or "",
        )
        return self.state

    def fail(self, exc: Exception) -> AttemptState:
        self.state = AttemptState.FAILED_TERMINAL
        self.outcome = ProfileFetchOutcome(
            ok=False,
            namespace=self.current_namespace,
            status=FETCH_ERROR_STATUS,
            detail=str(exc),
        )
        return self.state


async def fetch_profile(client: Any, realm: str, name: str, namespaces: Sequence[str]) -> ProfileFetchOutcome:
    """Try each namespace in order until one answers or one fails for real."""
    policy = NamespaceFallback(namespaces)
    while policy.state == AttemptState.TRYING:
        namespace = policy.current_namespace
        try:
            result = await client.get_character_profile(realm, name, namespace)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "Profile request raised",
                extra=sanitize_log_extra(realm=realm, character=name, namespace=namespace, error=str(exc)),
            )
            policy.fail(exc)
            break
        policy.advance(result)

    if not policy.outcome.ok:
        logger.warning(
            "Profile lookup failed",
            extra=sanitize_log_extra(
                realm=realm,
                character=name,
                status=policy.outcome.status,
                namespace=policy.outcome.namespace,
            ),
        )
    return policy.outcome
