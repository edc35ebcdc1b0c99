"""Database layer - engine, base classes, types, and immutability."""

from placement_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from placement_kernel.db.engine import create_tables, get_engine, get_session
from placement_kernel.db.types import round_money, to_decimal

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "round_money",
    "to_decimal",
]
