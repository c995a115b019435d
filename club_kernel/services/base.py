"""
BaseService -- abstract base for all club services.

Responsibility:
    Common constructor (session, clock) and the transaction boundary
    every mutating service method runs inside.

Architecture position:
    Kernel > Services.  Concrete services live in ``club_modules/*/service.py``.

Invariants enforced:
    - Each public mutating method is exactly one store transaction:
      committed on success, rolled back on any failure.  No partial state
      survives a raised error.
    - Read methods never commit; they share the transient-failure mapping.
    - Transient store failures surface as StoreUnavailableError; lost
      optimistic locks surface as ConcurrentModificationError.  Every other
      exception propagates unchanged.
"""

from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from club_kernel.db.engine import is_transient_store_error, translate_store_errors
from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.exceptions import ConcurrentModificationError, StoreUnavailableError
from club_kernel.logging_config import get_logger

logger = get_logger("services.base")


class BaseService(ABC):
    """
    Abstract base class for club services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller.  Mutating methods
        wrap their work in ``self._unit_of_work(...)``; read methods run inside
        ``self._read(...)`` and never commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()

    @contextmanager
    def _unit_of_work(
        self,
        operation: str,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
    ) -> Iterator[Session]:
        try:
            yield self.session
            self.session.commit()
        except StaleDataError as exc:
            self.session.rollback()
            logger.warning(
                "concurrent_modification",
                extra={"operation": operation, "entity_type": entity_type},
            )
            raise ConcurrentModificationError(entity_type or "record", entity_id) from exc
        except Exception as exc:
            self.session.rollback()
            if is_transient_store_error(exc):
                logger.error("store_unavailable", extra={"operation": operation})
                raise StoreUnavailableError(operation, str(exc)) from exc
            raise

    @contextmanager
    def _read(self, operation: str) -> Iterator[Session]:
        with translate_store_errors(self.session, operation):
            yield self.session
