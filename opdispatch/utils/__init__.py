"""
Utility helpers.

Re-exports:
- bytes: hex and base64 helpers
- cbor: deterministic CBOR (de)serialization
"""

from .bytes import ensure_bytes, from_base64, from_hex, to_base64, to_hex
from .cbor import dumps as cbor_dumps
from .cbor import loads as cbor_loads

__all__ = [
    # bytes
    "to_hex",
    "from_hex",
    "ensure_bytes",
    "to_base64",
    "from_base64",
    # cbor
    "cbor_dumps",
    "cbor_loads",
]
