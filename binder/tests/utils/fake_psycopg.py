"""
Lightweight psycopg stand-in for DBClassroomRepo unit tests.

``install_fake_psycopg`` patches a target module so ``psycopg.connect``
returns a connection that records every statement and answers from a queue
of scripted results. Assertions then inspect the recorded SQL and params.
"""
from __future__ import annotations

import types
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple


@dataclass
class FakeDB:
    executed: List[Tuple[str, tuple]] = field(default_factory=list)
    results: List[Any] = field(default_factory=list)
    commits: int = 0
    rowcount: int = 1

    def queue(self, *results: Any) -> None:
        """Queue results; a tuple answers fetchone, a list answers fetchall."""
        self.results.extend(results)

    def statements(self) -> List[str]:
        return [" ".join(sql.split()).lower() for sql, _ in self.executed]


class _FakeCursor:
    def __init__(self, db: FakeDB) -> None:
        self._db = db
        self._result: Any = None
        self.rowcount = 0

    def execute(self, sql: str, params: tuple | list = ()) -> None:
        self._db.executed.append((sql, tuple(params)))
        self.rowcount = self._db.rowcount
        sql_low = sql.lower()
        wants_rows = sql_low.lstrip().startswith("select") or "returning" in sql_low
        self._result = self._db.results.pop(0) if wants_rows and self._db.results else None

    def fetchone(self) -> Optional[tuple]:
        if isinstance(self._result, list):
            return self._result[0] if self._result else None
        return self._result

    def fetchall(self) -> list:
        if self._result is None:
            return []
        return self._result if isinstance(self._result, list) else [self._result]

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _FakeConn:
    def __init__(self, db: FakeDB) -> None:
        self._db = db

    def cursor(self):
        return _FakeCursor(self._db)

    def commit(self) -> None:
        self._db.commits += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def install_fake_psycopg(monkeypatch, target_module) -> FakeDB:
    """Patch ``target_module.psycopg`` and return the recording backend."""
    db = FakeDB()

    def fake_connect(dsn: str, **kwargs):
        return _FakeConn(db)

    monkeypatch.setattr(target_module, "psycopg", types.SimpleNamespace(connect=fake_connect))
    return db


__all__ = ["FakeDB", "install_fake_psycopg"]
