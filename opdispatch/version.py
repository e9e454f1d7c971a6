"""
Version helpers for opdispatch.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"


def user_agent() -> str:
    """Default User-Agent string sent by the JSON-RPC client."""
    return f"opdispatch-py/{__version__}"


__all__ = ["__version__", "user_agent"]
