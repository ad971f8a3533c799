"""
rolelink.constants — Shared Constants
======================================

Discord endpoints, OAuth scope and the presence sentinels written into
role-connection metadata.  Import from here instead of repeating literals
in services, cogs and routes.
"""

from __future__ import annotations

DISCORD_API = "https://discord.com/api/v10"
DISCORD_AUTHORIZE_URL = "https://discord.com/oauth2/authorize"

OAUTH_SCOPE = "identify role_connections.write"
OAUTH_STATE_TTL_SECONDS = 600

# Values written for an "integer_equal" metadata record.
PRESENCE_TRUE = "1"
PRESENCE_FALSE = "0"

# Discord caps an application's role-connection schema at five records.
MAX_METADATA_RECORDS = 5

CONNECT_PROMPT = "To enable linked roles, connect here: {url}"
