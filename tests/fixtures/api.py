"""HTTP fixtures: the FastAPI app wired to the test store and directory."""

from collections.abc import Generator
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from src.user_service.api.http.app import app
from src.user_service.api.http.deps import get_db_session, get_member_directory
from src.user_service.core.security import ADMIN, USER

ADMIN_HEADERS = {
    "X-Authenticated-User": "admin",
    "X-Authenticated-Authorities": f"{ADMIN},{USER}",
}
USER_HEADERS = {
    "X-Authenticated-User": "jane",
    "X-Authenticated-Authorities": USER,
}


class _HealthyDatabase:
    def __init__(self, healthy: bool = True):
        self.healthy = healthy

    def health_check(self) -> bool:
        return self.healthy

    def get_pool_status(self) -> dict:
        return {"size": 1, "checked_in": 1, "checked_out": 0, "overflow": 0}


@pytest.fixture
def client(session: Session, member_directory) -> Generator[TestClient]:
    """Test client without lifespan; dependencies point at the test fixtures."""
    app.dependency_overrides[get_db_session] = lambda: session
    app.dependency_overrides[get_member_directory] = lambda: member_directory
    app.state.app_dependencies = SimpleNamespace(
        database_service=_HealthyDatabase(), member_directory=member_directory
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN_HEADERS)


@pytest.fixture
def user_headers() -> dict[str, str]:
    return dict(USER_HEADERS)
