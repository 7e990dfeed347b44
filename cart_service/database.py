from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import config
from .errors import StoreError
from .utils.logging import logger


def _install_sqlite_locking(engine: Engine) -> None:
    """Make SQLite transactions take the write lock when they begin.

    SQLite ignores ``FOR UPDATE``. Starting every transaction with
    ``BEGIN IMMEDIATE`` serializes writers for the whole transaction, so a
    read-check-write sequence cannot interleave with another writer.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # hand transaction control to the "begin" hook below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(url: str = config.DATABASE_URL, echo: bool = config.DB_ECHO) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": config.SQLITE_BUSY_TIMEOUT},
        )
        _install_sqlite_locking(engine)
        return engine
    return create_engine(url, echo=echo, pool_pre_ping=True)


engine = make_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)   # one session per request or worker


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run the enclosed block as one store transaction.

    Commits when the block exits normally and rolls back on every other exit
    path, including business errors raised on purpose. Store failures are
    re-raised as ``StoreError`` with the driver exception as the cause.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("transaction_rolled_back", error=str(exc))
        raise StoreError(str(exc)) from exc
    except BaseException:
        db.rollback()
        raise


@contextmanager
def read_scope(db: Session) -> Iterator[Session]:
    """Run plain reads, reporting store failures as ``StoreError``.

    Nothing is committed, so loaded objects stay usable after the block.
    """
    try:
        yield db
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("read_failed", error=str(exc))
        raise StoreError(str(exc)) from exc
