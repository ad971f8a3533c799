"""
rolelink.api.auth — Discord OAuth2 connect flow
================================================

``/connect`` sends the user to Discord's consent screen with the
``identify role_connections.write`` scope.  ``/callback`` exchanges the
code, identifies the user and stores their credential so later role
changes can be written to their profile.

The ``state`` parameter is a short-lived HS256 JWT signed with the OAuth
client secret, so no server-side state table is needed.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

import httpx
import jwt
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, RedirectResponse
from jwt.exceptions import InvalidTokenError

from rolelink.api.deps import get_api, get_config, get_store
from rolelink.config import RoleLinkConfig
from rolelink.constants import DISCORD_AUTHORIZE_URL, OAUTH_SCOPE, OAUTH_STATE_TTL_SECONDS
from rolelink.database.engine import run_db
from rolelink.database.store import Credential, Store
from rolelink.services.discord_api import DiscordAPI, OAuthError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])

STATE_ALGORITHM = "HS256"
STATE_AUDIENCE = "rolelink:connect"


def issue_state(cfg: RoleLinkConfig) -> str:
    """Create a signed, expiring OAuth state token."""
    payload = {
        "nonce": secrets.token_urlsafe(16),
        "aud": STATE_AUDIENCE,
        "exp": datetime.now(UTC) + timedelta(seconds=OAUTH_STATE_TTL_SECONDS),
    }
    return jwt.encode(payload, cfg.client_secret, algorithm=STATE_ALGORITHM)


def verify_state(cfg: RoleLinkConfig, state: str) -> bool:
    try:
        jwt.decode(
            state,
            cfg.client_secret,
            algorithms=[STATE_ALGORITHM],
            audience=STATE_AUDIENCE,
        )
    except InvalidTokenError:
        return False
    return True


def oauth_authorize_url(cfg: RoleLinkConfig, state: str) -> str:
    query = urlencode(
        {
            "client_id": cfg.client_id,
            "redirect_uri": cfg.redirect_uri,
            "response_type": "code",
            "scope": OAUTH_SCOPE,
            "state": state,
        }
    )
    return f"{DISCORD_AUTHORIZE_URL}?{query}"


@router.get("/connect")
async def connect(cfg: RoleLinkConfig = Depends(get_config)):
    """Redirect to Discord OAuth2 consent screen."""
    return RedirectResponse(oauth_authorize_url(cfg, issue_state(cfg)))


@router.get("/callback", response_class=PlainTextResponse)
async def callback(
    code: str | None = None,
    state: str | None = None,
    cfg: RoleLinkConfig = Depends(get_config),
    store: Store = Depends(get_store),
    api: DiscordAPI = Depends(get_api),
):
    """Exchange the OAuth code and store the user's credential."""
    if not code:
        return PlainTextResponse("Missing code.", status_code=400)
    if not state or not verify_state(cfg, state):
        return PlainTextResponse("Invalid or expired OAuth state.", status_code=400)

    try:
        token_resp = await api.exchange_code(code)
        user = await api.fetch_identity(token_resp["access_token"])
        user_id = int(user["id"])
    except (OAuthError, httpx.HTTPError, ValueError, KeyError) as exc:
        logger.error("callback error: %s", exc)
        return PlainTextResponse(f"OAuth failed: {exc}", status_code=500)

    try:
        await run_db(store.set_credential, user_id, Credential.from_token_response(token_resp))
    except Exception:
        logger.exception("Failed to store credential for %s", user_id)
        return PlainTextResponse(
            "Could not save your connection. Please try again later.", status_code=500,
        )
    logger.info("Stored credential for %s (%s)", user.get("username"), user_id)

    return PlainTextResponse(f"Thanks {user.get('username', 'there')}! Your account is connected.")
