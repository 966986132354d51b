"""Service layer modules (network and external I/O).

Includes the Robolly API client and render file helpers.
"""

__all__ = [
    "api",
    "assets",
    "errors",
]
