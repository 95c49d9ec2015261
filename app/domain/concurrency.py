"""Optimistic concurrency control for engine writes.

Every mutation of an instance or approval request is a unit of work that
reads the row, validates, stages its child rows and finally issues a
version-checked UPDATE of the parent row. If another writer committed in
between, the UPDATE matches zero rows, the whole unit is rolled back
(ledger rows included) and re-run from the read. No lock is held while a
unit waits on the definition service.

Driver-level store failures surface as ``UnavailableError`` with code
``STORE_UNAVAILABLE`` so callers see the same error shape for the store as
for the definition service.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import DBAPIError
from sqlmodel import Session, SQLModel

from app.domain.errors import ConflictError, ErrorCode, UnavailableError
from app.infra.metrics import get_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StaleVersionError(Exception):
    """The row changed since it was read; the unit of work must restart."""


@contextmanager
def store_errors(session: Session) -> Iterator[None]:
    """Roll back and raise UnavailableError when the database driver fails."""
    try:
        yield
    except DBAPIError as e:
        logger.error(f"Store failure: {e}", exc_info=True)
        session.rollback()
        raise UnavailableError(
            "Workflow store is unavailable",
            code=ErrorCode.STORE_UNAVAILABLE,
        ) from e


def compare_and_set(
    session: Session,
    model: Type[SQLModel],
    entity_id: Any,
    expected_version: int,
    values: Dict[str, Any],
) -> None:
    """Update ``model`` row ``entity_id`` only if it is still at ``expected_version``.

    Bumps the version on success.

    Raises:
        StaleVersionError: If no row matched
    """
    statement = (
        update(model)
        .where(model.id == entity_id, model.version == expected_version)
        .values(version=expected_version + 1, **values)
    )
    result = session.connection().execute(statement)
    if result.rowcount != 1:
        raise StaleVersionError(f"{model.__name__} {entity_id} changed since version {expected_version}")


def run_serialized(
    session: Session,
    entity: str,
    entity_id: Any,
    unit: Callable[[], T],
    max_attempts: int,
) -> T:
    """Run ``unit`` and commit, restarting it when the version check fails.

    Any other exception rolls the session back and propagates unchanged.

    Raises:
        ConflictError: If every attempt lost the race
        UnavailableError: If the store fails
    """
    metrics = get_metrics()

    for attempt in range(1, max_attempts + 1):
        try:
            with store_errors(session):
                result = unit()
                session.commit()
            return result
        except StaleVersionError:
            session.rollback()
            metrics.concurrency_conflicts.labels(entity=entity).inc()
            logger.warning(
                f"Version conflict on {entity} {entity_id} (attempt {attempt}/{max_attempts})",
                extra={f"{entity}_id": str(entity_id)},
            )
        except Exception:
            session.rollback()
            raise

    raise ConflictError(
        f"Too many concurrent updates to {entity} {entity_id}; try again",
    )
