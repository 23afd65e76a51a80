"""Resolve caller identity and access level through the host platform."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


class AccessLevel(str, Enum):
    NO_ACCESS = "no_access"
    CUSTOMER = "customer"
    ADMIN = "admin"


class AccessResolutionError(RuntimeError):
    """Raised when the host platform cannot identify the caller."""


class AccessDeniedError(PermissionError):
    """Raised when the caller lacks the access level an operation needs."""


@dataclass(slots=True, frozen=True)
class AccessDecision:
    user_id: str
    has_access: bool
    access_level: AccessLevel

    @property
    def is_admin(self) -> bool:
        return self.has_access and self.access_level is AccessLevel.ADMIN


class AccessResolver(Protocol):
    async def resolve(self, headers: Mapping[str, str], experience_id: str) -> AccessDecision:
        ...


class StaticAccessResolver:
    """Grant every caller the same access level; meant for local development."""

    def __init__(self, level: AccessLevel, user_id: str = "dev-user") -> None:
        self.level = level
        self.user_id = user_id

    async def resolve(self, headers: Mapping[str, str], experience_id: str) -> AccessDecision:
        return AccessDecision(
            user_id=self.user_id,
            has_access=self.level is not AccessLevel.NO_ACCESS,
            access_level=self.level,
        )


class HostAccessResolver:
    """Forward the caller's user token to the host platform's access check endpoint."""

    def __init__(
        self,
        check_url: str,
        *,
        token_header: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.check_url = check_url
        self.token_header = token_header
        self._client = client
        self._timeout = timeout

    async def _get(self, params: dict[str, str], headers: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(self.check_url, params=params, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(self.check_url, params=params, headers=headers)

    async def resolve(self, headers: Mapping[str, str], experience_id: str) -> AccessDecision:
        token = headers.get(self.token_header)
        if not token:
            raise AccessResolutionError("Missing user token")

        try:
            response = await self._get({"experience_id": experience_id}, {self.token_header: token})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise AccessResolutionError("Unable to verify user token") from exc
        except ValueError as exc:
            raise AccessResolutionError("Invalid response from access check") from exc

        try:
            level = AccessLevel(payload.get("access_level", AccessLevel.NO_ACCESS.value))
            user_id = str(payload["user_id"])
        except (AttributeError, KeyError, ValueError) as exc:
            raise AccessResolutionError("Malformed access decision") from exc

        return AccessDecision(
            user_id=user_id,
            has_access=bool(payload.get("has_access", False)),
            access_level=level,
        )


def build_access_resolver(settings: Settings) -> AccessResolver:
    """Pick the host resolver when configured, otherwise the static development resolver."""

    if settings.access_check_url:
        return HostAccessResolver(
            settings.access_check_url,
            token_header=settings.user_token_header,
            timeout=settings.storage_timeout_seconds,
        )
    logger.debug(
        "No access check URL configured; using static access level %s",
        settings.dev_access_level.value,
    )
    return StaticAccessResolver(settings.dev_access_level)
