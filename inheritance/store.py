from __future__ import annotations

"""
SQLite persistence for deployments
==================================

Stores named deployment snapshots (asset ledger, reserve, oracle, vault) as
JSON blobs plus an append-only, indexed copy of every vault event so the
history can be queried without decoding snapshots.

Design notes
------------
- Single-writer, many-reader friendly via WAL.
- Schema versioned and created on open.
- Snapshot and events for a deployment are written in one transaction.

Example
-------
    store = DeploymentStore("inheritance.db")
    dep = Deployment.create(owner, notary)
    store.save("estate", dep)
    dep = store.load("estate")
"""

import contextlib
import json
import sqlite3
import threading
import time
from typing import Any, Dict, Iterator, List, Optional

from .clock import Clock
from .deployment import Deployment
from .errors import StoreError


def _now_s() -> int:
    return int(time.time())


def _to_json_blob(obj: Any) -> bytes:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")


def _from_json_blob(blob: Optional[bytes]) -> Any:
    if not blob:
        return None
    return json.loads(bytes(blob).decode("utf-8"))


class DeploymentStore:
    SCHEMA_VERSION = 1

    def __init__(self, path: str) -> None:
        uri = path.startswith("file:")
        self._db = sqlite3.connect(path, uri=uri, check_same_thread=False, isolation_level=None)
        self._db.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._apply_pragmas(memory=path == ":memory:")
        with self.tx():
            self._migrate()

    # -- lifecycle -------------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            self._db.close()

    def __enter__(self) -> "DeploymentStore":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @contextlib.contextmanager
    def tx(self) -> Iterator[None]:
        with self._lock:
            self._db.execute("BEGIN IMMEDIATE")
            try:
                yield
            except BaseException:
                self._db.execute("ROLLBACK")
                raise
            self._db.execute("COMMIT")

    def _apply_pragmas(self, memory: bool) -> None:
        cur = self._db.cursor()
        if not memory:
            cur.execute("PRAGMA journal_mode=WAL")
        cur.execute("PRAGMA synchronous=NORMAL")
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    def _migrate(self) -> None:
        cur = self._db.cursor()
        cur.execute("CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        row = cur.execute("SELECT value FROM meta WHERE key='schema_version'").fetchone()
        if row is None:
            cur.execute(
                "INSERT INTO meta(key, value) VALUES('schema_version', ?)",
                (str(self.SCHEMA_VERSION),),
            )
        elif int(row["value"]) > self.SCHEMA_VERSION:
            raise StoreError(
                "database schema is newer than this build",
                details={"found": int(row["value"]), "supported": self.SCHEMA_VERSION},
            )
        # One statement per execute(): executescript() would COMMIT the open tx.
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS deployments (
                name        TEXT PRIMARY KEY,
                owner       TEXT NOT NULL,
                state       INTEGER NOT NULL,
                snapshot    BLOB NOT NULL,
                created_at  INTEGER NOT NULL,
                updated_at  INTEGER NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS events (
                name        TEXT NOT NULL,
                seq         INTEGER NOT NULL,
                ts          INTEGER NOT NULL,
                event       TEXT NOT NULL,
                args_json   BLOB NOT NULL,
                PRIMARY KEY (name, seq),
                FOREIGN KEY(name) REFERENCES deployments(name) ON DELETE CASCADE
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_events_event ON events(name, event)")
        cur.close()

    # -- deployments -----------------------------------------------------------

    def exists(self, name: str) -> bool:
        with self._lock:
            row = self._db.execute("SELECT 1 FROM deployments WHERE name=?", (name,)).fetchone()
        return row is not None

    def names(self) -> List[str]:
        with self._lock:
            rows = self._db.execute("SELECT name FROM deployments ORDER BY name").fetchall()
        return [r["name"] for r in rows]

    def save(self, name: str, deployment: Deployment) -> None:
        snap = deployment.dump()
        vault = snap["vault"]
        now = _now_s()
        with self.tx():
            self._db.execute(
                """
                INSERT INTO deployments(name, owner, state, snapshot, created_at, updated_at)
                VALUES(?, ?, ?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    state=excluded.state,
                    snapshot=excluded.snapshot,
                    updated_at=excluded.updated_at
                """,
                (name, vault["access"]["owner"], vault["state"], _to_json_blob(snap), now, now),
            )
            row = self._db.execute("SELECT MAX(seq) AS m FROM events WHERE name=?", (name,)).fetchone()
            last_seq = -1 if row["m"] is None else int(row["m"])
            fresh = [e for e in vault["events"] if int(e["seq"]) > last_seq]
            self._db.executemany(
                "INSERT INTO events(name, seq, ts, event, args_json) VALUES(?, ?, ?, ?, ?)",
                [(name, e["seq"], e["ts"], e["name"], _to_json_blob(e["args"])) for e in fresh],
            )

    def load(self, name: str, *, clock: Optional[Clock] = None) -> Deployment:
        with self._lock:
            row = self._db.execute("SELECT snapshot FROM deployments WHERE name=?", (name,)).fetchone()
        if row is None:
            raise StoreError("deployment not found", details={"name": name})
        try:
            return Deployment.load(_from_json_blob(row["snapshot"]), clock=clock)
        except (KeyError, ValueError, TypeError) as e:
            raise StoreError("corrupt deployment snapshot", details={"name": name, "error": str(e)}) from e

    def delete(self, name: str) -> bool:
        with self.tx():
            cur = self._db.execute("DELETE FROM deployments WHERE name=?", (name,))
        return cur.rowcount > 0

    # -- events ----------------------------------------------------------------

    def events(self, name: str, event: Optional[str] = None, since: int = 0) -> List[Dict[str, Any]]:
        sql = "SELECT seq, ts, event, args_json FROM events WHERE name=? AND seq>=?"
        params: List[Any] = [name, since]
        if event:
            sql += " AND event=?"
            params.append(event)
        sql += " ORDER BY seq"
        with self._lock:
            rows = self._db.execute(sql, params).fetchall()
        return [
            {"seq": r["seq"], "ts": r["ts"], "name": r["event"], "args": _from_json_blob(r["args_json"])}
            for r in rows
        ]


__all__ = ["DeploymentStore"]
