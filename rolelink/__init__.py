"""
RoleLink — Discord Linked Roles bridge
=======================================
Mirrors guild roles into a user's Discord role-connection metadata so the
roles show up as verified badges on their profile.  Users authorize once
through OAuth; afterwards every role gained or lost in a mapped guild is
written to their profile automatically.

Package layout::

    rolelink/
    ├── __main__.py        # python -m rolelink — bot + web on one loop
    ├── config.py          # env + YAML → typed config
    ├── constants.py       # endpoints, scope, presence sentinels
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + run_db async bridge
    │   ├── models.py      # ORM tables for the SQL backend
    │   └── store.py       # Store interface: memory / JSON file / SQL
    ├── engine/
    │   ├── roles.py       # role-change detection, presence encoding
    │   └── schema.py      # metadata definitions, validation, merge
    ├── services/
    │   ├── discord_api.py     # Discord REST (OAuth, metadata)
    │   ├── sync_service.py    # role → metadata synchronization
    │   └── schema_service.py  # schema registration
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader
    │   └── cogs/
    │       ├── membership.py  # on_member_update → sync task
    │       └── admin.py       # /register_metadata, /map_role, /unmap_role
    └── api/
        ├── main.py        # FastAPI app factory
        └── auth.py        # /connect + /callback OAuth flow
"""

__version__ = "0.1.0"
