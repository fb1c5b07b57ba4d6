"""Repository adapters - Database implementations."""

from .memory import InMemoryMembershipStore
from .postgres import PostgresMembershipStore, run_migrations

__all__ = ["InMemoryMembershipStore", "PostgresMembershipStore", "run_migrations"]
