"""Database module for SQLite persistence.

Provides:
- Database connection management and schema initialization
- ContentStore: wordbooks and listening tests
- DollarLedger: reward transactions
- Repository functions for enrollments and study logs
"""

from academy.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
