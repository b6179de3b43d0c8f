from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Sequence

from sqlalchemy import event
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

from config import settings


class StorageError(RuntimeError):
    """A write to the store failed; the current run must not continue."""


def _configure_sqlite_pragmas(dbapi_conn, _record) -> None:
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA journal_mode=WAL;")
    cur.execute("PRAGMA busy_timeout=5000;")  # ms
    cur.close()


class Storage:
    """
    Owns one SQLAlchemy engine. Built by the process entry point (cli / app startup)
    and handed to every engine call.
    """

    def __init__(self, db_url: str | None = None, echo: bool = False):
        self.db_url = db_url or settings.db_url
        connect_args = {}
        if self.db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine = create_engine(self.db_url, echo=echo, connect_args=connect_args)
        if self.db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite_pragmas)

    def create_db_and_tables(self) -> None:
        import models  # noqa: F401  (registers tables on SQLModel.metadata)

        SQLModel.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        return Session(self.engine)

    @contextmanager
    def write_session(self, what: str) -> Iterator[Session]:
        """Session committed on exit; any database error surfaces as StorageError."""
        session = Session(self.engine)
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"failed to write {what}: {type(e).__name__}: {e}") from e
        finally:
            session.close()

    def upsert(self, session: Session, model: type, rows: List[Dict[str, Any]], keys: Sequence[str]) -> None:
        """
        INSERT .. ON CONFLICT(keys) DO UPDATE in one statement, so concurrent
        writers of the same key replace each other instead of colliding.
        """
        if not rows:
            return
        insert = pg_insert if self.engine.dialect.name == "postgresql" else sqlite_insert
        stmt = insert(model).values(rows)
        changed = {c: stmt.excluded[c] for c in rows[0] if c not in keys}
        session.exec(stmt.on_conflict_do_update(index_elements=list(keys), set_=changed))

    def dispose(self) -> None:
        self.engine.dispose()
