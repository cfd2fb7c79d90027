"""Undo journal behind InMemoryUnitOfWork.transaction().

In-memory repos call record_undo() after each write.  Inside a
transaction the undo step is kept, and if the block raises the steps run
in reverse.  Only writes made in the transaction's own context are
recorded, so rows another writer stored meanwhile survive a rollback,
as they would under PostgreSQL.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar

_journal_var: ContextVar[list[Callable[[], None]] | None] = ContextVar(
    "undo_journal", default=None
)


def record_undo(undo: Callable[[], None]) -> None:
    journal = _journal_var.get()
    if journal is not None:
        journal.append(undo)


@asynccontextmanager
async def undo_scope() -> AsyncIterator[None]:
    outer = _journal_var.get()
    journal: list[Callable[[], None]] = []
    token = _journal_var.set(journal)
    try:
        yield
    except BaseException:
        for undo in reversed(journal):
            undo()
        raise
    finally:
        _journal_var.reset(token)
    # nested block: the enclosing transaction may still roll these back
    if outer is not None:
        outer.extend(journal)
