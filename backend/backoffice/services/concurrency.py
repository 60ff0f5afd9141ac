# Overview: Transaction helpers shared by the state-machine services.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the rows a transition reads.

    SQLite ignores the clause; the conditional updates below still hold
    there because SQLite serializes writers.
    """
    return query.with_for_update()


def guarded_update(query, values: dict) -> int:
    """
    UPDATE ... WHERE <guard> and return the affected-row count.

    The guard lives in the query filters (e.g. status is still pending), so
    a row already moved by a concurrent request is simply not matched.
    """
    return query.update(values, synchronize_session=False)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a transactional unit, retrying on lock/deadlock and optimistic
    version conflicts. Each retry starts from a rolled-back session, so
    preconditions are re-checked against committed state.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
