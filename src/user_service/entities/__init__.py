"""Entities module with hybrid entity-centric structure.

Each entity has its own package containing:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.user import (
    User,
    UserAuthorityTable,
    UserRecord,
    UserRepository,
    UserTable,
)

__all__ = [
    "User",
    "UserRecord",
    "UserTable",
    "UserAuthorityTable",
    "UserRepository",
]
