"""Utility functions for the placement kernel."""

from placement_kernel.utils.hashing import (
    canonicalize_json,
    hash_payload,
    hash_timeline_entry,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "hash_timeline_entry",
]
