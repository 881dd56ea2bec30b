"""Ledger store with an optimistic all-or-nothing transaction primitive"""

import random
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from recycle_ledger.domain.exceptions import TransactionConflictError
from recycle_ledger.infrastructure.database.models import Base
from recycle_ledger.infrastructure.database.session import create_db_engine, create_session_factory
from recycle_ledger.infrastructure.observability.logging import log_transaction_retry
from recycle_ledger.infrastructure.observability.metrics import transaction_conflict_counter

T = TypeVar("T")

# Driver messages for lock contention / serialization failures worth retrying
_RETRYABLE_OPERATIONAL_MARKERS = ("database is locked", "deadlock", "could not serialize")

# Unique-key violations: a concurrent insert of the same key or redemption code won
_UNIQUE_VIOLATION_MARKERS = ("unique constraint", "duplicate key")


def is_conflict(error: Exception) -> bool:
    """True when the error means another transaction won the race"""
    if isinstance(error, StaleDataError):
        return True
    if isinstance(error, IntegrityError):
        message = str(error.orig).lower()
        return any(marker in message for marker in _UNIQUE_VIOLATION_MARKERS)
    if isinstance(error, OperationalError):
        message = str(error).lower()
        return any(marker in message for marker in _RETRYABLE_OPERATIONAL_MARKERS)
    return False


class LedgerStore:
    """
    Persistent document collections plus the atomic transaction primitive.

    Every mutable record carries a version column; a flush issues
    UPDATE ... WHERE version = <version read>, so a transaction whose reads
    went stale fails at commit instead of overwriting a concurrent write.
    """

    def __init__(
        self,
        engine: Engine,
        max_attempts: int = 10,
        backoff_base: float = 0.01,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.engine = engine
        self.session_factory = create_session_factory(engine)
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._sleep = sleep

    def atomically(self, body: Callable[[Session], T], name: str = "transaction") -> T:
        """
        Run body(session) and commit its writes as one unit.

        The body must issue all of its reads before its writes and must be
        free of side effects outside the session, because it is re-run from
        scratch when the commit conflicts.

        Retry strategy:
        - Conflicts (stale version, duplicate key race, lock contention) roll
          back and re-run after a jittered exponential backoff
        - Any other exception rolls back and propagates unchanged
        - After max_attempts conflicts, raises TransactionConflictError
        """
        attempt = 0
        while True:
            attempt += 1
            session = self.session_factory()
            try:
                result = body(session)
                session.commit()
                return result
            except (StaleDataError, IntegrityError, OperationalError) as e:
                session.rollback()
                if not is_conflict(e):
                    raise

                transaction_conflict_counter.labels(transaction=name).inc()
                if attempt >= self.max_attempts:
                    raise TransactionConflictError(attempt, e) from e

                log_transaction_retry(name, attempt, e)
                backoff = self.backoff_base * (2 ** (attempt - 1))
                self._sleep(random.uniform(0, backoff))
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def read(self, body: Callable[[Session], T]) -> T:
        """Run read-only queries in a short-lived session"""
        session = self.session_factory()
        try:
            return body(session)
        finally:
            session.close()


def create_ledger_store(
    database_url: str,
    max_attempts: int = 10,
    backoff_base: float = 0.01,
    engine: Optional[Engine] = None,
) -> LedgerStore:
    """Build a ledger store for a database URL"""
    engine = engine or create_db_engine(database_url)
    return LedgerStore(engine, max_attempts=max_attempts, backoff_base=backoff_base)


def create_schema(store: LedgerStore) -> None:
    Base.metadata.create_all(bind=store.engine)
