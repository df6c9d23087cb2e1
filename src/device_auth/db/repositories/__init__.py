"""
device_auth.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for accounts and device bindings.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories are intentionally thin; quota and session rules belong in services.
