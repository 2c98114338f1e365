"""Database engine and session factory used across the application."""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine

from src.user_service.runtime.config.config_data import ConfigData
from src.user_service.runtime.context import get_config


class DbSessionService:
    def __init__(self):
        """Initialize the shared database engine and session factory."""

        main_config = get_config()
        db_config = main_config.database

        logger.info(
            "Configuring database engine for environment: {}", main_config.app.environment
        )
        engine_kwargs = {
            # Validate connections before use
            "pool_pre_ping": True,
            "echo": False,
            "connect_args": self._get_connect_args(main_config),
        }
        if not db_config.url.startswith("sqlite"):
            engine_kwargs.update(
                {
                    "pool_size": db_config.pool_size,
                    "max_overflow": db_config.max_overflow,
                    "pool_timeout": db_config.pool_timeout,
                    "pool_recycle": db_config.pool_recycle,
                }
            )

        self._engine = create_engine(db_config.connection_string, **engine_kwargs)

        if main_config.app.environment == "production":
            logger.info(
                "Database engine initialized",
                extra={
                    "pool_size": db_config.pool_size,
                    "max_overflow": db_config.max_overflow,
                    "pool_timeout": db_config.pool_timeout,
                    "pool_recycle": db_config.pool_recycle,
                },
            )

    @property
    def engine(self):
        return self._engine

    @staticmethod
    def _get_connect_args(config: ConfigData) -> dict:
        """Get database-specific connection arguments, including store timeouts."""
        connect_args = {}
        db_config = config.database

        if "postgresql" in db_config.url:
            connect_args.update(
                {
                    "application_name": f"{config.app.name}_{config.app.environment}",
                    "connect_timeout": 10,
                    "options": f"-c statement_timeout={db_config.statement_timeout_ms}",
                }
            )

        elif "sqlite" in db_config.url:
            connect_args.update(
                {
                    "check_same_thread": False,
                    # Lock wait, in seconds
                    "timeout": db_config.statement_timeout_ms / 1000,
                }
            )

            if config.app.environment == "production":
                logger.warning(
                    "SQLite is not recommended for production use. "
                    "Consider PostgreSQL for better performance and reliability."
                )

        return connect_args

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(self._engine, expire_on_commit=False, autoflush=True)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Context manager style helper for scripts and tests."""
        db = self.get_session()
        try:
            yield db
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(
                "Database transaction failed",
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            raise
        finally:
            db.close()

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                return True
        except SQLAlchemyError as e:
            logger.error(
                "Database health check failed",
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            return False

    def get_pool_status(self) -> dict:
        """Get current connection pool status for monitoring."""
        pool = self._engine.pool
        return {
            "size": getattr(pool, "size", lambda: 0)(),
            "checked_in": getattr(pool, "checkedin", lambda: 0)(),
            "checked_out": getattr(pool, "checkedout", lambda: 0)(),
            "overflow": getattr(pool, "overflow", lambda: 0)(),
        }

    def dispose(self) -> None:
        self._engine.dispose()
