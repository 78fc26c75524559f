# Overview: Transaction boundary for multi-row mutations plus the flush hook that stamps timestamps.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import event
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models.base import TimestampMixin
from ..validation import (
    ConcurrencyConflictError,
    DomainError,
    NotFoundError,
    TransactionFailedError,
)
from backoffice.time_utils import utcnow


def _stamp_timestamps(session, flush_context, instances):
    now = utcnow()
    for obj in session.new:
        if isinstance(obj, TimestampMixin):
            if obj.created_at is None:
                obj.created_at = now
            obj.updated_at = now
    for obj in session.dirty:
        if isinstance(obj, TimestampMixin) and session.is_modified(obj, include_collections=False):
            obj.updated_at = now


def register_unit_of_work_hooks() -> None:
    """
    Install the before_flush timestamp hook on every ORM session.

    Called from create_app(); safe to call more than once.
    """
    if not event.contains(Session, "before_flush", _stamp_timestamps):
        event.listen(Session, "before_flush", _stamp_timestamps)


@contextmanager
def unit_of_work(*, stale_check: tuple | None = None):
    """
    One atomic write against the store.

    Yields the request-scoped session and commits when the block exits
    cleanly. On failure the session is rolled back and:

    - DomainError subclasses propagate unchanged (validation, not found,
      insufficient stock, invalid transition...)
    - StaleDataError (version_id mismatch on the aggregate root) becomes
      NotFoundError when the row named by ``stale_check=(Model, id)`` is gone,
      ConcurrencyConflictError otherwise
    - anything else becomes TransactionFailedError carrying the cause

    Nothing is retried: back-office writes are not safe to replay blindly.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except StaleDataError as exc:
        session.rollback()
        if stale_check is not None:
            model, entity_id = stale_check
            still_there = session.query(model.id).filter_by(id=entity_id).scalar()
            if still_there is None:
                raise NotFoundError(
                    f"{model.__name__} not found",
                    details={"id": entity_id},
                ) from exc
        raise ConcurrencyConflictError(
            "Record was modified by another request; reload and try again",
        ) from exc
    except DomainError:
        session.rollback()
        raise
    except Exception as exc:
        session.rollback()
        raise TransactionFailedError(
            "Transaction failed and was rolled back",
            cause=exc,
        ) from exc
