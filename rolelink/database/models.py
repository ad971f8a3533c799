"""
rolelink.database.models — SQLAlchemy 2.0 Data Models
======================================================

Tables backing :class:`~rolelink.database.store.SqlStore`:

- oauth_credentials — one OAuth token set per Discord user
- role_mappings     — (guild, role) → metadata key
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all RoleLink ORM models."""


# ---------------------------------------------------------------------------
# OAuthCredential — tokens granted via /connect
# ---------------------------------------------------------------------------
class OAuthCredential(Base):
    __tablename__ = "oauth_credentials"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)  # Discord snowflake
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text, default=None)
    scope: Mapped[str | None] = mapped_column(String(200), default=None)
    obtained_at: Mapped[int] = mapped_column(BigInteger, nullable=False)  # epoch millis
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<OAuthCredential user={self.user_id} scope={self.scope!r}>"


# ---------------------------------------------------------------------------
# RoleMapping — admin-defined role → metadata key links
# ---------------------------------------------------------------------------
class RoleMapping(Base):
    __tablename__ = "role_mappings"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    role_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    metadata_key: Mapped[str] = mapped_column(String(50), nullable=False)

    def __repr__(self) -> str:
        return f"<RoleMapping guild={self.guild_id} role={self.role_id} key={self.metadata_key!r}>"
