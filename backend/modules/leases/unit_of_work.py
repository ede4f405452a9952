"""
Compensating unit of work for multi-entity lease operations.

Each step that changes state registers how to undo itself. If the block
raises, the undo actions run newest first and the original error
propagates; if it completes, they are discarded.

    async with LeaseUnitOfWork() as uow:
        lease = repo.create(lease)
        uow.on_rollback("delete lease", lambda: repo.delete(lease.id))
        ...
"""

import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class LeaseUnitOfWork:
    """Records undo actions and runs them when the block fails."""

    def __init__(self) -> None:
        self._undo: list[tuple[str, Callable[[], Any]]] = []

    def on_rollback(self, description: str, action: Callable[[], Any]) -> None:
        """Register an undo action; it may be a plain or async callable."""
        self._undo.append((description, action))

    async def rollback(self) -> None:
        while self._undo:
            description, action = self._undo.pop()
            try:
                result = action()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # Keep undoing the remaining steps; the caller sees the original error
                logger.exception(f"Rollback step failed: {description}")
            else:
                logger.debug(f"Rolled back: {description}")

    @property
    def pending(self) -> int:
        return len(self._undo)

    async def __aenter__(self) -> "LeaseUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            logger.info(f"Rolling back {len(self._undo)} step(s) after {exc_type.__name__}")
            await self.rollback()
        else:
            self._undo.clear()
        return False
