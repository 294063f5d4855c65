from models.base_model import Base
from models.user import User
from models.refresh_token import RefreshToken
from models.yap import Yap
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import SQLAlchemyError

# Map model names for easy querying
classes = {
    "User": User,
    "RefreshToken": RefreshToken,
    "Yap": Yap,
}

DEFAULT_TIMEOUT_SECONDS = 5.0


def _engine_options(url, timeout: float) -> dict:
    """Driver-specific knobs so no store call can block without bound."""
    backend = url.get_backend_name()
    if backend == "sqlite":
        options = {"connect_args": {"timeout": timeout, "check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # one shared connection, otherwise every checkout sees an empty db
            options["poolclass"] = StaticPool
        return options
    if backend == "postgresql":
        return {
            "pool_pre_ping": True,
            "pool_timeout": timeout,
            "connect_args": {
                "connect_timeout": max(1, int(timeout)),
                "options": f"-c statement_timeout={int(timeout * 1000)}",
            },
        }
    return {"pool_pre_ping": True, "pool_timeout": timeout}


class DBStorage:
    """Engine plus a scoped session, one instance per application."""

    def __init__(self, database_url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS, echo: bool = False):
        url = make_url(database_url)
        self.timeout = timeout
        self.__engine = create_engine(url, echo=echo, **_engine_options(url, timeout))
        self.__session = None

        # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
        if url.get_backend_name() == "sqlite":
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def drop_all(self):
        Base.metadata.drop_all(self.__engine)

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def rollback(self):
        self.__session.rollback()

    def delete(self, obj=None):
        """Delete object if exists (hard delete)"""
        if obj:
            self.__session.delete(obj)

    def get(self, cls, id):
        """Fetch one object by class and ID, always re-read from the database"""
        if cls in classes.values():
            return self.__session.get(cls, id, populate_existing=True)
        return None

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    # expose the SQLAlchemy session for advanced querying (joins, filters, etc.)
    def get_session(self):
        return self.__session
