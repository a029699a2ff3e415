# Overview: Row locking and storage-conflict translation shared by the ledger and checkout services.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrentUpdate
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The shift version column still catches interleaved writers there.
    populate_existing() makes the locked read refresh any cached instance.
    """
    return query.with_for_update().populate_existing()


@contextmanager
def conflicts_as_errors(message: str, details: dict | None = None):
    """
    Run one write attempt; a lock timeout or version conflict rolls the
    session back and surfaces as ConcurrentUpdate. Nothing is retried here.
    """
    try:
        yield
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        raise ConcurrentUpdate(message, dict(details or {}, reason=exc.__class__.__name__)) from exc
