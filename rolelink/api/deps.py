"""
rolelink.api.deps — FastAPI dependency injection
=================================================

The web app shares the bot's config, store and REST client.  They are
attached to ``app.state`` by :func:`rolelink.api.main.create_app` and
handed to routes through these dependencies.
"""

from __future__ import annotations

from fastapi import Request

from rolelink.config import RoleLinkConfig
from rolelink.database.store import Store
from rolelink.services.discord_api import DiscordAPI


def get_config(request: Request) -> RoleLinkConfig:
    return request.app.state.cfg


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_api(request: Request) -> DiscordAPI:
    return request.app.state.api
