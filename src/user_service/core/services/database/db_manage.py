"""Schema management for the identity store."""

from loguru import logger
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from src.user_service.runtime.context import get_config


class DbManageService:
    def __init__(self, engine: Engine | None = None):
        self._engine = engine or create_engine(
            get_config().database.connection_string, echo=False
        )

    def create_all(self) -> None:
        """Create the users and user_authorities tables with their indexes."""
        from src.user_service.entities.core.user import (  # noqa: F401
            UserAuthorityTable,
            UserTable,
        )

        SQLModel.metadata.create_all(self._engine)
        logger.info("Database initialized with tables.")
