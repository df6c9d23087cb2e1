"""
device_auth.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories for accounts
  and device bindings.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Any async SQLAlchemy backend works; SQLite (aiosqlite) is the dev/test default.
