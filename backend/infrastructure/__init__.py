from __future__ import annotations

"""
Infrastructure layer: storage adapters and technical helpers.

Nothing here imports service config (`config.*`); values are passed in by
`server.api.rest.dependencies`.
"""

__all__ = [
    "persistence",
    "utils",
]
