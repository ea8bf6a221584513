"""
Membership Directory

Read-only lookup of group and channel membership. The engine only depends
on the ``MembershipDirectory`` interface; ``SlackMembershipDirectory`` is the
production adapter over the Slack Web API.

Membership is paginated: each call returns one ``MemberPage`` and a
continuation cursor, and an absent cursor ends the sequence.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from consensus.config import get_settings
from consensus.errors import DependencyError

logger = structlog.get_logger(__name__)

RETRYABLE_EXCEPTIONS = (httpx.TransportError,)
RATE_LIMITED = 429

_backoff = wait_exponential(multiplier=0.5, min=0.5, max=5)


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, RETRYABLE_EXCEPTIONS):
        return True
    return (
        isinstance(error, httpx.HTTPStatusError)
        and error.response.status_code == RATE_LIMITED
    )


def _retry_after(error: BaseException | None) -> float | None:
    """Seconds requested by a 429 response's Retry-After header, if any."""
    if not isinstance(error, httpx.HTTPStatusError):
        return None
    header = error.response.headers.get("Retry-After")
    if header is None:
        return None
    try:
        return max(0.0, float(header))
    except ValueError:
        return None


def _wait_for_retry(retry_state: RetryCallState) -> float:
    """Honor Retry-After on rate limiting, capped; back off exponentially otherwise."""
    error = retry_state.outcome.exception() if retry_state.outcome else None
    requested = _retry_after(error)
    if requested is not None:
        return min(requested, get_settings().slack_max_retry_after)
    return _backoff(retry_state)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "directory_call_retry",
        attempt=retry_state.attempt_number,
        rate_limited=isinstance(error, httpx.HTTPStatusError),
        error=str(error),
    )


@dataclass
class MemberPage:
    """One batch of member ids and the cursor for the next batch."""

    members: list[str] = field(default_factory=list)
    next_cursor: str | None = None


PageFetcher = Callable[[str, str | None], Awaitable[MemberPage]]


async def iter_member_pages(
    fetch: PageFetcher,
    source_id: str,
) -> AsyncIterator[list[str]]:
    """
    Lazily yield member batches until the continuation cursor is absent.

    Zero-length pages are skipped, not treated as the end.
    """
    cursor: str | None = None
    while True:
        page = await fetch(source_id, cursor)
        if page.members:
            yield page.members
        if not page.next_cursor:
            return
        cursor = page.next_cursor


class MembershipDirectory(ABC):
    """Resolves groups and channels to their member ids."""

    @abstractmethod
    async def fetch_group_members(self, group_id: str, cursor: str | None = None) -> MemberPage:
        """Fetch one page of a group's members."""

    @abstractmethod
    async def fetch_channel_members(
        self, channel_id: str, cursor: str | None = None
    ) -> MemberPage:
        """Fetch one page of a channel's members."""

    @abstractmethod
    async def is_bot_account(self, user_id: str) -> bool:
        """Whether the account is a bot (never a voter)."""

    async def find_group_by_handle(self, handle: str) -> str | None:
        """Resolve a human-readable group handle to its id, if supported."""
        return None


class SlackMembershipDirectory(MembershipDirectory):
    """
    Membership directory backed by the Slack Web API.

    Uses usergroups.users.list, conversations.members, users.info and
    usergroups.list. Transport errors and HTTP 429 are retried, the latter
    after the server's Retry-After; API-level failures (``ok: false``) raise
    ``DependencyError``.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self._page_size = page_size or settings.membership_page_size
        token = token or settings.slack_bot_token
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.slack_api_base_url,
            timeout=timeout or settings.slack_timeout_seconds,
            headers=headers,
        )
        self._group_handles: dict[str, str] | None = None

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "SlackMembershipDirectory":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=_wait_for_retry,
        retry=retry_if_exception(_is_retryable),
        before_sleep=_log_retry,
        reraise=True,
    )
    async def _call(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.get(f"/{method}", params=params)
        response.raise_for_status()
        payload: dict[str, Any] = response.json()
        if not payload.get("ok"):
            error = payload.get("error", "unknown_error")
            logger.warning("directory_call_rejected", method=method, error=error)
            raise DependencyError(
                f"Membership lookup {method} failed: {error}",
                method=method,
                error=error,
            )
        return payload

    async def _request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            return await self._call(method, params)
        except httpx.HTTPError as e:
            logger.error("directory_call_failed", method=method, error=str(e))
            raise DependencyError(
                f"Membership lookup {method} failed: {e}",
                method=method,
            ) from e

    @staticmethod
    def _next_cursor(payload: dict[str, Any]) -> str | None:
        metadata = payload.get("response_metadata") or {}
        return metadata.get("next_cursor") or None

    async def fetch_group_members(self, group_id: str, cursor: str | None = None) -> MemberPage:
        params: dict[str, Any] = {"usergroup": group_id}
        if cursor:
            params["cursor"] = cursor
        payload = await self._request("usergroups.users.list", params)
        return MemberPage(
            members=list(payload.get("users") or []),
            next_cursor=self._next_cursor(payload),
        )

    async def fetch_channel_members(
        self, channel_id: str, cursor: str | None = None
    ) -> MemberPage:
        params: dict[str, Any] = {"channel": channel_id, "limit": self._page_size}
        if cursor:
            params["cursor"] = cursor
        payload = await self._request("conversations.members", params)
        return MemberPage(
            members=list(payload.get("members") or []),
            next_cursor=self._next_cursor(payload),
        )

    async def is_bot_account(self, user_id: str) -> bool:
        payload = await self._request("users.info", {"user": user_id})
        user = payload.get("user") or {}
        return bool(user.get("is_bot"))

    async def find_group_by_handle(self, handle: str) -> str | None:
        if self._group_handles is None:
            payload = await self._request("usergroups.list", {})
            self._group_handles = {
                group["handle"]: group["id"]
                for group in payload.get("usergroups") or []
                if group.get("handle") and group.get("id")
            }
        return self._group_handles.get(handle.lstrip("@"))
