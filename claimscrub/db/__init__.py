"""
Database module for Claim Scrubbing and Submission.

Exports database connection utilities and the read-side repository.
"""

from claimscrub.db.connection import (
    check_db_connection,
    close_db_connection,
    get_engine,
    get_session,
    get_session_maker,
    init_db,
)
from claimscrub.db.repository import ClaimRepository

__all__ = [
    # Connection
    "get_engine",
    "get_session_maker",
    "get_session",
    "close_db_connection",
    "check_db_connection",
    "init_db",
    # Repository
    "ClaimRepository",
]
