"""Persistence layer for the SQL lease store.

This module provides:
- Async engine and session factory construction
- The ``leasehold_leases`` ORM table
"""

from leasehold.persistence.db import build_engine, build_session_factory, init_db
from leasehold.persistence.tables import Base, LeaseTable

__all__ = [
    # DB
    "build_engine",
    "build_session_factory",
    "init_db",
    # Tables
    "Base",
    "LeaseTable",
]
