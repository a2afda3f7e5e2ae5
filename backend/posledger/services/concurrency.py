# Overview: Transaction boundary helpers shared by every mutating service.

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import LedgerError, PersistenceFailure


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_atomic(func, *, action: str):
    """
    Execute func() and commit its work as one unit.

    Any exception rolls the whole session back, so a multi-step operation
    (stock adjustments + ledger append) either lands completely or not at
    all. Database failures, including optimistic version conflicts
    (StaleDataError), surface as PersistenceFailure. There is no retry.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except LedgerError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceFailure(
            f"Could not save {action}; no changes were recorded",
            details={"action": action, "reason": exc.__class__.__name__},
        ) from exc
    except Exception:
        db.session.rollback()
        raise
