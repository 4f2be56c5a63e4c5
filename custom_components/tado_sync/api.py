"""Async client for the Tado REST API."""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
import json
import logging
from typing import Any

from aiohttp import ClientError, ClientResponseError, ClientSession, ClientTimeout

from homeassistant.helpers import config_entry_oauth2_flow

from .const import API_URL

_LOGGER = logging.getLogger(__name__)

REQUEST_TIMEOUT = ClientTimeout(total=30)


class TadoApiError(Exception):
    """Base exception for Tado API errors."""


class TadoAuthError(TadoApiError):
    """Authentication error."""


class TadoConnectionError(TadoApiError):
    """Connection error."""


class AbstractAuth(ABC):
    """Provides access tokens for the API client."""

    @abstractmethod
    async def async_get_access_token(self) -> str:
        """Return a valid access token."""


class ConfigEntryAuth(AbstractAuth):
    """Access tokens from the OAuth2 session of a config entry."""

    def __init__(self, oauth_session: config_entry_oauth2_flow.OAuth2Session) -> None:
        self._oauth_session = oauth_session

    async def async_get_access_token(self) -> str:
        try:
            await self._oauth_session.async_ensure_token_valid()
        except ClientResponseError as err:
            if 400 <= err.status < 500:
                raise TadoAuthError(f"Token refresh was rejected: {err}") from err
            raise TadoConnectionError(f"Token refresh failed: {err}") from err
        except (ClientError, asyncio.TimeoutError) as err:
            raise TadoConnectionError(f"Token refresh failed: {err}") from err
        return self._oauth_session.token["access_token"]


class TokenAuth(AbstractAuth):
    """Fixed access token, used while the config entry does not exist yet."""

    def __init__(self, access_token: str) -> None:
        self._access_token = access_token

    async def async_get_access_token(self) -> str:
        return self._access_token


class TadoApiClient:
    """Resource oriented calls to ``my.tado.com``."""

    def __init__(
        self, session: ClientSession, auth: AbstractAuth, base_url: str = API_URL
    ) -> None:
        """Initialize the client."""
        self._session = session
        self._auth = auth
        self._base_url = base_url.rstrip("/")

    async def _request(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> Any:
        token = await self._auth.async_get_access_token()
        url = f"{self._base_url}{path}"
        _LOGGER.debug("%s %s", method, path)
        try:
            async with self._session.request(
                method,
                url,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
                timeout=REQUEST_TIMEOUT,
            ) as response:
                if response.status in (401, 403):
                    raise TadoAuthError(
                        f"{method} {path} was rejected with status {response.status}"
                    )
                body = await response.text()
                if response.status >= 400:
                    raise TadoApiError(
                        f"{method} {path} failed with status {response.status}: {body}"
                    )
        except (ClientError, asyncio.TimeoutError) as err:
            raise TadoConnectionError(f"{method} {path} failed: {err}") from err

        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError as err:
            raise TadoApiError(f"Invalid response for {method} {path}") from err

    async def async_get_me(self) -> dict[str, Any]:
        """Return the user with the homes configured for the account."""
        return await self._request("GET", "/me")

    async def async_get_zones(self, home_id: str) -> list[dict[str, Any]]:
        """Return the zones of a home, each with its devices."""
        return await self._request("GET", f"/homes/{home_id}/zones") or []

    async def async_get_zone_capabilities(
        self, home_id: str, zone_id: int
    ) -> dict[str, Any]:
        return await self._request(
            "GET", f"/homes/{home_id}/zones/{zone_id}/capabilities"
        )

    async def async_get_zone_state(self, home_id: str, zone_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/homes/{home_id}/zones/{zone_id}/state")

    async def async_set_overlay(
        self, home_id: str, zone_id: int, overlay: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Apply a manual or timer overlay to a zone."""
        return await self._request(
            "PUT", f"/homes/{home_id}/zones/{zone_id}/overlay", overlay
        )

    async def async_unset_overlay(self, home_id: str, zone_id: int) -> None:
        """Return a zone to its smart schedule."""
        await self._request("DELETE", f"/homes/{home_id}/zones/{zone_id}/overlay")

    async def async_get_hooks(self, home_id: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"/homes/{home_id}/hooks") or []

    async def async_create_hook(
        self, home_id: str, url: str, events: list[str]
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"/homes/{home_id}/hooks", {"events": events, "url": url}
        )

    async def async_delete_hook(self, home_id: str, hook_id: str) -> None:
        await self._request("DELETE", f"/homes/{home_id}/hooks/{hook_id}")
