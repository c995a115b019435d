"""
Module: club_kernel.selectors.base
Responsibility: Base class for read-only query selectors.
Architecture position: Kernel > Selectors.  Selectors NEVER create, modify,
    or delete data.

Invariants enforced:
    - Read-only access: no add/delete/flush/commit on the session.
    - Selectors return frozen snapshots, not ORM instances, so pure
      aggregation code never touches the session.
    - The caller owns the session and its transaction scope.  No row locks
      are taken; concurrent writers are never blocked by a report.
    - Timeouts and dropped connections surface as StoreUnavailableError.
"""

from abc import ABC
from typing import Any

from sqlalchemy.sql.expression import Executable
from sqlalchemy.orm import Session

from club_kernel.db.engine import translate_store_errors


class BaseSelector(ABC):
    """Abstract base class for all selectors."""

    def __init__(self, session: Session):
        self.session = session

    @property
    def _operation(self) -> str:
        return type(self).__name__

    def _scalars(self, stmt: Executable) -> list[Any]:
        """Run ``stmt`` and fetch every scalar row."""
        with translate_store_errors(self.session, self._operation):
            return list(self.session.scalars(stmt))

    def _scalar(self, stmt: Executable) -> Any:
        with translate_store_errors(self.session, self._operation):
            return self.session.scalar(stmt)
