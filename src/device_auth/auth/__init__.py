"""
device_auth.auth

Credential and token primitives.

Responsibilities:
- Password hashing and verification (bcrypt).
- Signed bearer tokens bound to a device (PyJWT).
- The request gate that protects privileged operations.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Nothing in this package touches storage; it is safe to use from any layer.
