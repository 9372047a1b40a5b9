"""Transaction helpers: row locking, commit translation and bounded retry."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL reports the constraint name, SQLite the table.column pair.
_VOUCHER_CLASH_MARKERS = ("redemptions_voucher_code_unique", "redemptions.voucher_code")


def lock_for_update(stmt):
    """Apply row-level locking; SQLite ignores FOR UPDATE, PostgreSQL honors it."""
    return stmt.with_for_update()


def is_voucher_clash(exc: IntegrityError) -> bool:
    """True when the violated constraint is the voucher code uniqueness."""
    message = str(exc.orig)
    return any(marker in message for marker in _VOUCHER_CLASH_MARKERS)


def commit(session: Session) -> None:
    """Commit, translating transient failures into ``StorageUnavailable``.

    A voucher code taken by a concurrent transaction between generation and
    insert counts as transient: the retry issues a fresh code.
    """
    try:
        session.commit()
    except OperationalError as exc:
        session.rollback()
        raise StorageUnavailable("Storage is temporarily unavailable, please retry.") from exc
    except IntegrityError as exc:
        session.rollback()
        if is_voucher_clash(exc):
            logger.warning("voucher code taken concurrently, rejecting commit for retry")
            raise StorageUnavailable("Could not allocate a unique voucher code, please retry.") from exc
        raise


def run_with_retry(
    session: Session,
    func: Callable[[], T],
    *,
    attempts: int = 3,
    backoff_base: float = 0.1,
) -> T:
    """Run a unit of work, retrying only on ``StorageUnavailable``.

    Business-rule errors propagate on the first attempt. The session is rolled
    back before every retry so each attempt re-reads current state.
    """
    for attempt in range(attempts):
        try:
            return func()
        except StorageUnavailable:
            session.rollback()
            if attempt >= attempts - 1:
                logger.warning("storage unavailable after %d attempts", attempts)
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning("storage unavailable, retrying in %.2fs (attempt %d/%d)", delay, attempt + 1, attempts)
            time.sleep(delay)
    raise StorageUnavailable("Storage is temporarily unavailable, please retry.")


@contextmanager
def storage_guard() -> Iterator[None]:
    """Translate SQLAlchemy failures raised inside the block.

    Operational errors and voucher code clashes become ``StorageUnavailable``;
    the caller rolls back. Other integrity errors propagate unchanged.
    """
    try:
        yield
    except OperationalError as exc:
        raise StorageUnavailable("Storage is temporarily unavailable, please retry.") from exc
    except IntegrityError as exc:
        if not is_voucher_clash(exc):
            raise
        raise StorageUnavailable("Could not allocate a unique voucher code, please retry.") from exc
