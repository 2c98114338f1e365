from dataclasses import dataclass

from src.user_service.core.services import DbSessionService, MemberDirectoryClient


@dataclass
class ApplicationDependencies:
    database_service: DbSessionService
    member_directory: MemberDirectoryClient
