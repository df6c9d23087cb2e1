"""
device_auth.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Per-call context propagation and latency/outcome instrumentation.
"""

# Package marker.
