"""SQLite implementation of the account request repository."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import Any, Optional

from ..contracts import AccountRequestStatus, CreateAccountRequestInput
from .models import AccountRequest, apply_changes, new_request_id
from .repository import AccountRequestRepository


class SQLiteAccountRequestRepository(AccountRequestRepository):
    """Persist account requests using SQLite.

    Each record is stored as a JSON document alongside the columns the worker
    and the read path filter on.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS account_requests (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                status TEXT NOT NULL,
                aws_account_id TEXT,
                created_at TEXT NOT NULL,
                document TEXT NOT NULL
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_account_requests_status ON account_requests (status)"
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()
            return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    def _insert(self, request: AccountRequest) -> None:
        self._execute(
            "INSERT INTO account_requests (id, user_id, status, aws_account_id, created_at, document) VALUES (?, ?, ?, ?, ?, ?)",
            request.id,
            request.user_id,
            request.status.value,
            request.aws_account_id,
            request.created_at.isoformat(),
            request.model_dump_json(),
        )

    def _read_modify_write(
        self, request_id: str, changes: dict[str, Any]
    ) -> AccountRequest | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                "SELECT document FROM account_requests WHERE id = ?", (request_id,)
            )
            row = cur.fetchone()
            if row is None:
                return None
            updated = apply_changes(
                AccountRequest.model_validate_json(row["document"]), changes
            )
            cur.execute(
                "UPDATE account_requests SET status = ?, aws_account_id = ?, document = ? WHERE id = ?",
                (
                    updated.status.value,
                    updated.aws_account_id,
                    updated.model_dump_json(),
                    request_id,
                ),
            )
            self._conn.commit()
            return updated

    @staticmethod
    def _to_models(rows: list[sqlite3.Row]) -> list[AccountRequest]:
        return [AccountRequest.model_validate_json(r["document"]) for r in rows]

    # ------------------------------------------------------------------
    # Repository API
    async def create(
        self, data: CreateAccountRequestInput, user_id: str
    ) -> AccountRequest:
        request = AccountRequest.from_input(new_request_id(), user_id, data)
        await asyncio.to_thread(self._insert, request)
        return request

    async def get(self, request_id: str) -> AccountRequest | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT document FROM account_requests WHERE id = ?",
            request_id,
        )
        return AccountRequest.model_validate_json(row["document"]) if row else None

    async def find_by_status(
        self, status: AccountRequestStatus
    ) -> list[AccountRequest]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT document FROM account_requests WHERE status = ?",
            AccountRequestStatus(status).value,
        )
        return self._to_models(rows)

    async def find_by_user(self, user_id: str) -> list[AccountRequest]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT document FROM account_requests WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
            user_id,
        )
        return self._to_models(rows)

    async def find_by_aws_account_id(self, account_id: str) -> AccountRequest | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT document FROM account_requests WHERE aws_account_id = ?",
            account_id,
        )
        return AccountRequest.model_validate_json(row["document"]) if row else None

    async def update(self, request_id: str, **changes: Any) -> AccountRequest | None:
        return await asyncio.to_thread(self._read_modify_write, request_id, changes)

    async def update_status(
        self,
        request_id: str,
        status: AccountRequestStatus,
        error_message: Optional[str] = None,
    ) -> AccountRequest | None:
        changes: dict[str, Any] = {"status": status}
        if error_message:
            changes["error_message"] = error_message
        return await self.update(request_id, **changes)

    async def list_requests(
        self,
        user_id: Optional[str] = None,
        status: Optional[AccountRequestStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AccountRequest], int]:
        clauses: list[str] = []
        params: list[Any] = []
        if user_id:
            clauses.append("user_id = ?")
            params.append(user_id)
        if status:
            clauses.append("status = ?")
            params.append(AccountRequestStatus(status).value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        total_row = await asyncio.to_thread(
            self._fetchone, f"SELECT COUNT(*) AS total FROM account_requests{where}", *params
        )
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT document FROM account_requests{where} ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
            *params,
            limit,
            offset,
        )
        return self._to_models(rows), total_row["total"]

    async def delete(self, request_id: str) -> bool:
        deleted = await asyncio.to_thread(
            self._execute, "DELETE FROM account_requests WHERE id = ?", request_id
        )
        return deleted > 0

    async def status_counts(self) -> dict[AccountRequestStatus, int]:
        rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT status, COUNT(*) AS total FROM account_requests GROUP BY status",
        )
        counts = {status: 0 for status in AccountRequestStatus}
        for row in rows:
            counts[AccountRequestStatus(row["status"])] = row["total"]
        return counts

    async def clear(self) -> None:
        await asyncio.to_thread(self._execute, "DELETE FROM account_requests")
