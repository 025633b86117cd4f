"""Resolve the live connection that holds a base's row data.

A base without a connection URL lives in the primary database and shares the
request session's connection and transaction. Any other base gets its own
engine, created once per URL.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from tabledata.core.config import settings
from tabledata.core.errors import ConnectivityFailure
from tabledata.models.base import MetaBase

_LOG = logging.getLogger("tabledata.db")


@lru_cache(maxsize=32)
def _engine_for_url(url: str) -> Engine:
    return create_engine(url, pool_pre_ping=settings.EXTERNAL_DB_POOL_PRE_PING)


def _is_primary(base: MetaBase | None) -> bool:
    return base is None or not str(base.connection_url or "").strip()


def _connectivity_failure(base: MetaBase | None, exc: Exception) -> ConnectivityFailure:
    title = base.title if base is not None else "primary"
    _LOG.error("connection to base %r failed: %s", title, exc)
    return ConnectivityFailure(f'Database of base "{title}" is unreachable')


@contextmanager
def get_connection(db: Session, base: MetaBase | None, *, write: bool = False) -> Iterator[Connection]:
    """Yield a connection for ``base``.

    With ``write=True`` the block runs as one transaction: committed when the
    block exits cleanly, rolled back on any exception.
    """
    if _is_primary(base):
        try:
            conn = db.connection()
        except (OperationalError, InterfaceError) as exc:
            raise _connectivity_failure(base, exc) from exc
        try:
            yield conn
        except Exception:
            if write:
                db.rollback()
            raise
        if write:
            db.commit()
        return

    engine = _engine_for_url(str(base.connection_url).strip())
    try:
        conn = engine.connect()
    except (OperationalError, InterfaceError) as exc:
        raise _connectivity_failure(base, exc) from exc
    try:
        if write:
            with conn.begin():
                yield conn
        else:
            yield conn
    finally:
        conn.close()
