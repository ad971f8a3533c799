"""
rolelink.services.sync_service — Role → Metadata Synchronization
=================================================================

Turns one observed member update into role-connection writes.

How it works:
    1. Compute the roles whose presence flipped (symmetric difference).
    2. Keep only roles mapped to a metadata key in this guild.
    3. Look up the member's stored OAuth credential.
       - None → DM the member a link to ``/connect`` (at most once per
         update) and record ``not_connected``.
    4. Otherwise write ``{key: "1"|"0"}`` under the member's own token.
    5. Record and log each result.  Nothing is retried and nothing is
       rolled back; one failing key never blocks the others.

Every pass yields a :class:`SyncReport`.  Outcomes are logged through the
``rolelink.sync`` logger so they can be routed independently of the rest
of the application log.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import discord
import httpx

from rolelink.config import RoleLinkConfig
from rolelink.constants import CONNECT_PROMPT
from rolelink.database.engine import run_db
from rolelink.database.store import Credential, Store
from rolelink.engine.roles import MembershipSnapshot, encode_presence
from rolelink.services.discord_api import DiscordAPI

logger = logging.getLogger(__name__)
sync_log = logging.getLogger("rolelink.sync")

Notifier = Callable[[str], Awaitable[object]]


class SyncStatus(enum.StrEnum):
    WRITTEN = "written"
    FAILED = "failed"
    NOT_CONNECTED = "not_connected"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class SyncOutcome:
    """Result for one mapped role in one pass."""

    role_id: int
    metadata_key: str
    value: str
    status: SyncStatus
    http_status: int | None = None
    detail: str | None = None


@dataclass(slots=True)
class SyncReport:
    """Everything one synchronization pass did."""

    guild_id: int
    user_id: int
    outcomes: list[SyncOutcome] = field(default_factory=list)
    notified: bool = False

    @property
    def writes_attempted(self) -> int:
        return sum(
            1 for o in self.outcomes
            if o.status in (SyncStatus.WRITTEN, SyncStatus.FAILED, SyncStatus.ERROR)
        )


class RoleSyncService:
    """Applies mapped role transitions to users' role connections."""

    def __init__(self, cfg: RoleLinkConfig, store: Store, api: DiscordAPI) -> None:
        self.cfg = cfg
        self.store = store
        self.api = api

    # -------------------------------------------------------------------
    # Gateway entry point
    # -------------------------------------------------------------------
    async def handle_member_update(
        self, before: discord.Member, after: discord.Member,
    ) -> SyncReport | None:
        """Sync one ``on_member_update`` pair.  Never raises."""
        try:
            if after.bot:
                return None
            snapshot = MembershipSnapshot.from_members(before, after)
            if not snapshot.changed():
                return None
            return await self.sync_member(
                guild_id=after.guild.id,
                user_id=after.id,
                username=after.name,
                snapshot=snapshot,
                notify=after.send,
            )
        except Exception:
            logger.exception(
                "Error syncing role connections for %s", getattr(after, "id", "?"),
                extra={"event_type": "member_update", "user_id": getattr(after, "id", None)},
            )
            return None

    # -------------------------------------------------------------------
    # Core pass
    # -------------------------------------------------------------------
    async def sync_member(
        self,
        *,
        guild_id: int,
        user_id: int,
        username: str | None,
        snapshot: MembershipSnapshot,
        notify: Notifier,
    ) -> SyncReport:
        """Write metadata for every mapped role that changed in *snapshot*."""
        report = SyncReport(guild_id=guild_id, user_id=user_id)

        changed = snapshot.changed()
        if not changed:
            return report

        mappings = await run_db(self.store.guild_mappings, guild_id)
        targets = [(role_id, mappings[role_id]) for role_id in sorted(changed) if role_id in mappings]
        if not targets:
            return report

        credential: Credential | None = await run_db(self.store.get_credential, user_id)

        for role_id, metadata_key in targets:
            value = encode_presence(snapshot.has_now(role_id))

            if credential is None:
                if not report.notified:
                    report.notified = True
                    await self._notify_connect(user_id, notify)
                outcome = SyncOutcome(role_id, metadata_key, value, SyncStatus.NOT_CONNECTED)
            else:
                outcome = await self._write(credential, role_id, metadata_key, value, username)

            report.outcomes.append(outcome)
            _log_outcome(report, outcome)

        return report

    async def _write(
        self,
        credential: Credential,
        role_id: int,
        metadata_key: str,
        value: str,
        username: str | None,
    ) -> SyncOutcome:
        try:
            result = await self.api.write_role_connection(
                credential.access_token,
                {metadata_key: value},
                platform_username=username,
            )
        except httpx.HTTPError as exc:
            return SyncOutcome(
                role_id, metadata_key, value, SyncStatus.ERROR,
                detail=f"{type(exc).__name__}: {exc}",
            )
        except Exception as exc:
            logger.exception("Unexpected error writing %s", metadata_key)
            return SyncOutcome(
                role_id, metadata_key, value, SyncStatus.ERROR,
                detail=f"{type(exc).__name__}: {exc}",
            )

        if result.ok:
            return SyncOutcome(
                role_id, metadata_key, value, SyncStatus.WRITTEN, http_status=result.status,
            )
        return SyncOutcome(
            role_id, metadata_key, value, SyncStatus.FAILED,
            http_status=result.status, detail=result.body,
        )

    async def _notify_connect(self, user_id: int, notify: Notifier) -> None:
        """DM the connect link.  Failures are swallowed."""
        try:
            await notify(CONNECT_PROMPT.format(url=self.cfg.connect_url))
        except discord.HTTPException as exc:
            logger.debug("Could not DM connect prompt to %s: %s", user_id, exc)
        except Exception:
            logger.exception("Unexpected error sending connect prompt to %s", user_id)


# ---------------------------------------------------------------------------
# Outcome sink
# ---------------------------------------------------------------------------
def _log_outcome(report: SyncReport, outcome: SyncOutcome) -> None:
    extra = {
        "guild_id": report.guild_id,
        "user_id": report.user_id,
        "metadata_key": outcome.metadata_key,
        "sync_status": outcome.status.value,
    }
    if outcome.status is SyncStatus.WRITTEN:
        sync_log.info(
            "Updated %s %s=%s", report.user_id, outcome.metadata_key, outcome.value,
            extra=extra,
        )
    elif outcome.status is SyncStatus.NOT_CONNECTED:
        sync_log.info(
            "User %s has no stored credential; skipped %s", report.user_id, outcome.metadata_key,
            extra=extra,
        )
    else:
        sync_log.warning(
            "Failed to update role connection for %s (%s=%s): %s %s",
            report.user_id, outcome.metadata_key, outcome.value,
            outcome.http_status, outcome.detail,
            extra=extra,
        )
