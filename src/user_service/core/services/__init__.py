"""Core services exports."""

# Database Service
from .database.db_session import DbSessionService

# Member directory
from .member_directory import MemberDirectory, MemberDirectoryClient

# User Services
from .user.user_management import UserManagementService

__all__ = [
    # Database Service
    "DbSessionService",
    # Member directory
    "MemberDirectory",
    "MemberDirectoryClient",
    # User Services
    "UserManagementService",
]
