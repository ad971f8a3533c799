"""
rolelink.services.discord_api — Discord REST calls
===================================================

Thin async wrapper over the endpoints RoleLink needs:

- ``POST /oauth2/token`` — authorization-code exchange
- ``GET  /users/@me`` — identity of a freshly authorized user
- ``PUT  /users/@me/applications/{app}/role-connection`` — metadata write,
  under the **user's** bearer token
- ``GET/PUT /applications/{app}/role-connections/metadata`` — schema,
  under the **bot** token

One :class:`httpx.AsyncClient` is shared for the process lifetime with an
explicit timeout.  Non-2xx responses from the metadata endpoints are
returned as values; only transport-level ``httpx`` errors propagate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from rolelink.config import RoleLinkConfig
from rolelink.constants import DISCORD_API
from rolelink.engine.schema import MetadataDefinition

logger = logging.getLogger(__name__)


class OAuthError(RuntimeError):
    """Token exchange or identity lookup was rejected by Discord."""


@dataclass(frozen=True, slots=True)
class WriteResult:
    """Outcome of one role-connection write."""

    ok: bool
    status: int | None = None
    body: str | None = None


class DiscordAPI:
    """Discord REST client bound to one application."""

    def __init__(
        self,
        cfg: RoleLinkConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.cfg = cfg
        self._client = client or httpx.AsyncClient(
            base_url=DISCORD_API,
            timeout=cfg.http_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------
    # OAuth
    # -------------------------------------------------------------------
    async def exchange_code(self, code: str) -> dict:
        """Trade an authorization *code* for ``{access_token, refresh_token, scope}``."""
        resp = await self._client.post(
            "/oauth2/token",
            data={
                "client_id": self.cfg.client_id,
                "client_secret": self.cfg.client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.cfg.redirect_uri,
            },
        )
        if resp.status_code != 200:
            raise OAuthError(resp.text)
        payload = resp.json()
        if not payload.get("access_token"):
            raise OAuthError("No access token returned")
        return payload

    async def fetch_identity(self, access_token: str) -> dict:
        """Return the ``/users/@me`` payload for *access_token*."""
        resp = await self._client.get(
            "/users/@me",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if resp.status_code != 200:
            raise OAuthError(f"Failed to /users/@me: {resp.text}")
        return resp.json()

    # -------------------------------------------------------------------
    # Role-connection metadata
    # -------------------------------------------------------------------
    async def write_role_connection(
        self,
        access_token: str,
        metadata: dict[str, str],
        platform_username: str | None = None,
    ) -> WriteResult:
        """Upsert *metadata* on the user's role connection for this app."""
        body: dict = {"platform_name": self.cfg.platform_name, "metadata": metadata}
        if platform_username:
            body["platform_username"] = platform_username

        resp = await self._client.put(
            f"/users/@me/applications/{self.cfg.app_id}/role-connection",
            headers={"Authorization": f"Bearer {access_token}"},
            json=body,
        )
        if resp.is_success:
            return WriteResult(ok=True, status=resp.status_code)
        return WriteResult(ok=False, status=resp.status_code, body=resp.text)

    async def fetch_metadata_schema(self) -> list[MetadataDefinition] | None:
        """Return the currently registered schema, or None if the read failed."""
        resp = await self._client.get(
            f"/applications/{self.cfg.app_id}/role-connections/metadata",
            headers=self._bot_headers(),
        )
        if not resp.is_success:
            logger.warning(
                "Failed to read metadata schema: %s %s", resp.status_code, resp.text,
            )
            return None
        return [MetadataDefinition.from_payload(item) for item in resp.json()]

    async def register_metadata_schema(self, definitions: list[MetadataDefinition]) -> bool:
        """Replace the application's schema with *definitions*."""
        resp = await self._client.put(
            f"/applications/{self.cfg.app_id}/role-connections/metadata",
            headers=self._bot_headers(),
            json=[d.to_payload() for d in definitions],
        )
        if not resp.is_success:
            logger.warning(
                "Failed to register metadata: %s %s", resp.status_code, resp.text,
            )
            return False
        logger.info(
            "Metadata registered/updated (%s).",
            ", ".join(d.key for d in definitions) or "empty",
        )
        return True

    def _bot_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bot {self.cfg.bot_token}"}


__all__ = ["DiscordAPI", "OAuthError", "WriteResult"]
