"""In-memory tables with serializable write transactions.

One writer at a time holds the database lock for the whole transaction, so a
check-then-decrement on stock can never interleave with another writer. Records
are deep-copied on read and on write: callers mutate private copies and only
put() makes a change visible. Every first write to a key inside a transaction
records the previous value; rollback replays that log in reverse. Callbacks
registered with on_commit() run after the lock is released.
"""
from __future__ import annotations

import asyncio
import copy
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Callable

logger = logging.getLogger(__name__)

_MISSING = object()


class Transaction:
    """Undo log and after-commit callbacks of one write transaction."""

    def __init__(self) -> None:
        self._undo: list[tuple[str, int, Any]] = []
        self._seen: set[tuple[str, int]] = set()
        self._after_commit: list[Callable[[], Any]] = []

    def record(self, table: str, key: int, previous: Any) -> None:
        if (table, key) in self._seen:
            return
        self._seen.add((table, key))
        self._undo.append((table, key, previous))

    def on_commit(self, callback: Callable[[], Any]) -> None:
        self._after_commit.append(callback)

    @property
    def changes(self) -> int:
        return len(self._undo)


_current: ContextVar[Transaction | None] = ContextVar("sweetshop_transaction", default=None)


class InMemoryDatabase:
    def __init__(self) -> None:
        self._tables: dict[str, dict[int, Any]] = defaultdict(dict)
        self._sequences: dict[str, int] = defaultdict(int)
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Serializable write scope. Nested calls in the same task join the outer transaction."""
        outer = _current.get()
        if outer is not None:
            yield outer
            return
        async with self._lock:
            tx = Transaction()
            token = _current.set(tx)
            try:
                yield tx
            except BaseException:
                self._rollback(tx)
                raise
            finally:
                _current.reset(token)
        logger.debug("Committed transaction with %d change(s)", tx.changes)
        for callback in tx._after_commit:
            result = callback()
            if hasattr(result, "__await__"):
                await result

    def _rollback(self, tx: Transaction) -> None:
        for table, key, previous in reversed(tx._undo):
            if previous is _MISSING:
                self._tables[table].pop(key, None)
            else:
                self._tables[table][key] = previous
        logger.debug("Rolled back transaction with %d change(s)", tx.changes)

    def _require_transaction(self) -> Transaction:
        tx = _current.get()
        if tx is None:
            raise RuntimeError("Writes must run inside database.transaction()")
        return tx

    @property
    def in_transaction(self) -> bool:
        return _current.get() is not None

    def on_commit(self, callback: Callable[[], Any]) -> None:
        self._require_transaction().on_commit(callback)

    def next_id(self, table: str) -> int:
        self._sequences[table] += 1
        return self._sequences[table]

    def get(self, table: str, key: int) -> Any | None:
        record = self._tables[table].get(key)
        return copy.deepcopy(record) if record is not None else None

    def all(self, table: str) -> list[Any]:
        rows = self._tables[table]
        return [copy.deepcopy(rows[key]) for key in sorted(rows)]

    def count(self, table: str) -> int:
        return len(self._tables[table])

    def put(self, table: str, key: int, record: Any) -> None:
        tx = self._require_transaction()
        tx.record(table, key, self._tables[table].get(key, _MISSING))
        self._tables[table][key] = copy.deepcopy(record)

    def delete(self, table: str, key: int) -> None:
        tx = self._require_transaction()
        if key not in self._tables[table]:
            return
        tx.record(table, key, self._tables[table][key])
        del self._tables[table][key]
