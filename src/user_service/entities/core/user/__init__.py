"""User entity module.

This module contains all User-related classes organized by responsibility:
- UserRecord: Candidate user submitted by a client or a CSV row
- User: Domain entity as held by the identity store
- UserTable / UserAuthorityTable: Database persistence models
- UserRepository: Data access layer
"""

from .entity import User, UserRecord
from .repository import UserRepository
from .table import UserAuthorityTable, UserTable

__all__ = ["User", "UserRecord", "UserTable", "UserAuthorityTable", "UserRepository"]
