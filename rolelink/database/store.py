"""
rolelink.database.store — Token & Mapping Store
================================================

One capability, three backends:

* :class:`MemoryStore` — a dict guarded by a lock.  Used directly in tests
  and as the in-memory half of :class:`JsonFileStore`.
* :class:`JsonFileStore` — loads ``storage.json`` at startup and rewrites
  the whole document after every mutation.  File format::

      {
        "tokens":   {"<userId>": {"access_token": ..., "refresh_token": ...,
                                  "scope": ..., "obtained_at": <ms>}},
        "mappings": {"<guildId>": {"<roleId>": "<metadataKey>"}}
      }

* :class:`SqlStore` — the same operations over SQLAlchemy tables.

All methods are synchronous; async callers wrap them in
:func:`~rolelink.database.engine.run_db`.  There is no cross-operation
transaction: concurrent writes to the same key resolve last-writer-wins.
"""

from __future__ import annotations

import abc
import json
import logging
import os
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path

from sqlalchemy import Engine, delete, select

from rolelink.config import RoleLinkConfig
from rolelink.database.engine import create_db_engine, get_session, init_db
from rolelink.database.models import OAuthCredential, RoleMapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Credential:
    """OAuth token set stored for one user.  Never expired locally."""

    access_token: str
    refresh_token: str | None = None
    scope: str | None = None
    obtained_at: int = 0  # epoch milliseconds

    @classmethod
    def from_token_response(cls, payload: dict) -> Credential:
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            scope=payload.get("scope"),
            obtained_at=int(time.time() * 1000),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Credential:
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope"),
            obtained_at=int(data.get("obtained_at") or 0),
        )


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------
class Store(abc.ABC):
    """Durable user → credential and (guild, role) → key mappings."""

    @abc.abstractmethod
    def get_credential(self, user_id: int) -> Credential | None: ...

    @abc.abstractmethod
    def set_credential(self, user_id: int, credential: Credential) -> None: ...

    @abc.abstractmethod
    def get_mapping(self, guild_id: int, role_id: int) -> str | None: ...

    @abc.abstractmethod
    def guild_mappings(self, guild_id: int) -> dict[int, str]: ...

    @abc.abstractmethod
    def set_mapping(self, guild_id: int, role_id: int, metadata_key: str) -> None: ...

    @abc.abstractmethod
    def delete_mapping(self, guild_id: int, role_id: int) -> bool:
        """Remove a mapping.  Returns False if none existed."""


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------
class MemoryStore(Store):
    """Store kept entirely in memory, shaped like the JSON document."""

    def __init__(self, document: dict | None = None) -> None:
        document = document or {}
        self._tokens: dict[str, dict] = dict(document.get("tokens") or {})
        self._mappings: dict[str, dict[str, str]] = {
            gid: dict(roles) for gid, roles in (document.get("mappings") or {}).items()
        }
        self._lock = threading.RLock()

    def get_credential(self, user_id: int) -> Credential | None:
        with self._lock:
            raw = self._tokens.get(str(user_id))
        return Credential.from_dict(raw) if raw else None

    def set_credential(self, user_id: int, credential: Credential) -> None:
        with self._lock:
            self._tokens[str(user_id)] = credential.to_dict()
            self.persist()

    def get_mapping(self, guild_id: int, role_id: int) -> str | None:
        with self._lock:
            return self._mappings.get(str(guild_id), {}).get(str(role_id))

    def guild_mappings(self, guild_id: int) -> dict[int, str]:
        with self._lock:
            roles = self._mappings.get(str(guild_id), {})
            return {int(role_id): key for role_id, key in roles.items()}

    def set_mapping(self, guild_id: int, role_id: int, metadata_key: str) -> None:
        with self._lock:
            self._mappings.setdefault(str(guild_id), {})[str(role_id)] = metadata_key
            self.persist()

    def delete_mapping(self, guild_id: int, role_id: int) -> bool:
        with self._lock:
            roles = self._mappings.get(str(guild_id))
            if not roles or str(role_id) not in roles:
                return False
            del roles[str(role_id)]
            self.persist()
            return True

    def document(self) -> dict:
        """Return a deep-enough copy of the whole store as a JSON document."""
        with self._lock:
            return {
                "tokens": {uid: dict(tok) for uid, tok in self._tokens.items()},
                "mappings": {gid: dict(roles) for gid, roles in self._mappings.items()},
            }

    def persist(self) -> None:
        """Hook called after every mutation (with the lock held)."""


# ---------------------------------------------------------------------------
# JSON file
# ---------------------------------------------------------------------------
class JsonFileStore(MemoryStore):
    """:class:`MemoryStore` mirrored to a JSON file on every mutation."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(self._load(self.path))

    @staticmethod
    def _load(path: Path) -> dict:
        if not path.exists():
            logger.info("No store file at %s — starting empty.", path)
            return {"tokens": {}, "mappings": {}}
        with open(path, encoding="utf-8") as fh:
            document = json.load(fh)
        logger.info(
            "Loaded store from %s (%d tokens, %d guilds mapped)",
            path,
            len(document.get("tokens") or {}),
            len(document.get("mappings") or {}),
        )
        return document

    def persist(self) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(self.document(), fh, indent=2)
        os.replace(tmp, self.path)


# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------
class SqlStore(Store):
    """Store backed by the ``oauth_credentials`` / ``role_mappings`` tables."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_credential(self, user_id: int) -> Credential | None:
        with get_session(self.engine) as session:
            row = session.get(OAuthCredential, user_id)
            if row is None:
                return None
            return Credential(
                access_token=row.access_token,
                refresh_token=row.refresh_token,
                scope=row.scope,
                obtained_at=row.obtained_at,
            )

    def set_credential(self, user_id: int, credential: Credential) -> None:
        with get_session(self.engine) as session:
            row = session.get(OAuthCredential, user_id)
            if row is None:
                row = OAuthCredential(user_id=user_id)
                session.add(row)
            row.access_token = credential.access_token
            row.refresh_token = credential.refresh_token
            row.scope = credential.scope
            row.obtained_at = credential.obtained_at

    def get_mapping(self, guild_id: int, role_id: int) -> str | None:
        with get_session(self.engine) as session:
            row = session.get(RoleMapping, (guild_id, role_id))
            return row.metadata_key if row else None

    def guild_mappings(self, guild_id: int) -> dict[int, str]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(RoleMapping).where(RoleMapping.guild_id == guild_id)
            ).all()
            return {row.role_id: row.metadata_key for row in rows}

    def set_mapping(self, guild_id: int, role_id: int, metadata_key: str) -> None:
        with get_session(self.engine) as session:
            row = session.get(RoleMapping, (guild_id, role_id))
            if row is None:
                session.add(RoleMapping(
                    guild_id=guild_id, role_id=role_id, metadata_key=metadata_key,
                ))
            else:
                row.metadata_key = metadata_key

    def delete_mapping(self, guild_id: int, role_id: int) -> bool:
        with get_session(self.engine) as session:
            result = session.execute(
                delete(RoleMapping).where(
                    RoleMapping.guild_id == guild_id,
                    RoleMapping.role_id == role_id,
                )
            )
            return result.rowcount > 0


def build_store(cfg: RoleLinkConfig) -> Store:
    """Construct the backend selected by ``storage.backend``."""
    if cfg.storage_backend == "sql":
        engine = create_db_engine(cfg.database_url or "")
        init_db(engine)
        return SqlStore(engine)
    return JsonFileStore(cfg.storage_path)
