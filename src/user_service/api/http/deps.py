"""FastAPI dependency implementations."""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from src.user_service.api.http.app_data import ApplicationDependencies
from src.user_service.core.security import ADMIN, Principal, parse_authorities
from src.user_service.core.services import (
    MemberDirectory,
    UserManagementService,
)
from src.user_service.runtime.context import get_config


def get_db_session(request: Request) -> Iterator[Session]:
    """Get a database session for the duration of the request."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    session = app_deps.database_service.get_session()
    try:
        yield session
    finally:
        session.close()


def get_member_directory(request: Request) -> MemberDirectory:
    """Get the member directory client."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    return app_deps.member_directory


def get_user_management_service(
    db_session: Session = Depends(get_db_session),
    member_directory: MemberDirectory = Depends(get_member_directory),
) -> UserManagementService:
    """Get the User Management service instance."""
    return UserManagementService(db_session, member_directory)


def get_current_principal(request: Request) -> Principal:
    """Read the caller identity forwarded by the gateway.

    The gateway authenticates the caller and forwards the login and the
    comma-separated authorities as headers; requests without a login are
    rejected.
    """
    app_config = get_config().app
    login = (request.headers.get(app_config.actor_header) or "").strip()
    if not login:
        raise HTTPException(status_code=401, detail="Not authenticated")
    authorities = parse_authorities(
        request.headers.get(app_config.authorities_header, "")
    )
    return Principal(login=login, authorities=frozenset(authorities))


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Allow only callers holding ROLE_ADMIN."""
    if not principal.has_authority(ADMIN):
        raise HTTPException(status_code=403, detail="Administrator role required")
    return principal
