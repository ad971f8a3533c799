"""
rolelink.api.main — FastAPI application factory
================================================

The web app is built around the same config, store and Discord client as
the bot so both halves see one in-memory store.  ``python -m rolelink``
serves it with uvicorn on the bot's event loop.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from rolelink import __version__
from rolelink.api.auth import router as auth_router
from rolelink.config import RoleLinkConfig
from rolelink.database.store import Store
from rolelink.services.discord_api import DiscordAPI


def create_app(cfg: RoleLinkConfig, store: Store, api: DiscordAPI) -> FastAPI:
    app = FastAPI(title="RoleLink", version=__version__)
    app.state.cfg = cfg
    app.state.store = store
    app.state.api = api

    app.include_router(auth_router)

    @app.get("/", response_class=PlainTextResponse)
    def index():
        return "Linked roles app is running."

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
