"""
device_auth.services

Service-layer package.

Responsibilities:
- Own session and transaction boundaries.
- Compose hashing, tokens and device bindings into the login flows.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services take a sessionmaker rather than a session: every storage step gets its
# own short-lived session and deadline.
