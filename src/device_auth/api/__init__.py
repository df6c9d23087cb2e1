"""
device_auth.api

HTTP surface of the authentication service.

Responsibilities:
- FastAPI app factory and router modules.
- Mapping of domain errors onto HTTP status codes.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer should remain thin: request validation + delegation to services.
