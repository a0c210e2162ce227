"""PostgreSQL implementation of the account request repository."""

from __future__ import annotations

from typing import Any, Optional

import asyncpg

from ..contracts import AccountRequestStatus, CreateAccountRequestInput
from .models import AccountRequest, apply_changes, new_request_id
from .repository import AccountRequestRepository


class PostgresAccountRequestRepository(AccountRequestRepository):
    """Persist account requests using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS account_requests (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                status TEXT NOT NULL,
                aws_account_id TEXT,
                created_at TIMESTAMPTZ NOT NULL,
                document JSONB NOT NULL
            )
            """
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_account_requests_status ON account_requests (status)"
        )

    @staticmethod
    def _to_model(document: str | dict) -> AccountRequest:
        if isinstance(document, str):
            return AccountRequest.model_validate_json(document)
        return AccountRequest.model_validate(document)

    # ------------------------------------------------------------------
    async def create(
        self, data: CreateAccountRequestInput, user_id: str
    ) -> AccountRequest:
        request = AccountRequest.from_input(new_request_id(), user_id, data)
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO account_requests (id, user_id, status, aws_account_id, created_at, document) VALUES ($1, $2, $3, $4, $5, $6)",
                request.id,
                request.user_id,
                request.status.value,
                request.aws_account_id,
                request.created_at,
                request.model_dump_json(),
            )
        finally:
            await conn.close()
        return request

    async def get(self, request_id: str) -> AccountRequest | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT document FROM account_requests WHERE id = $1", request_id
            )
        finally:
            await conn.close()
        return self._to_model(row["document"]) if row else None

    async def find_by_status(
        self, status: AccountRequestStatus
    ) -> list[AccountRequest]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT document FROM account_requests WHERE status = $1",
                AccountRequestStatus(status).value,
            )
        finally:
            await conn.close()
        return [self._to_model(r["document"]) for r in rows]

    async def find_by_user(self, user_id: str) -> list[AccountRequest]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT document FROM account_requests WHERE user_id = $1 ORDER BY created_at DESC, id DESC",
                user_id,
            )
        finally:
            await conn.close()
        return [self._to_model(r["document"]) for r in rows]

    async def find_by_aws_account_id(self, account_id: str) -> AccountRequest | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT document FROM account_requests WHERE aws_account_id = $1",
                account_id,
            )
        finally:
            await conn.close()
        return self._to_model(row["document"]) if row else None

    async def update(self, request_id: str, **changes: Any) -> AccountRequest | None:
        conn = await self._connect()
        try:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT document FROM account_requests WHERE id = $1 FOR UPDATE",
                    request_id,
                )
                if row is None:
                    return None
                updated = apply_changes(self._to_model(row["document"]), changes)
                await conn.execute(
                    "UPDATE account_requests SET status = $1, aws_account_id = $2, document = $3 WHERE id = $4",
                    updated.status.value,
                    updated.aws_account_id,
                    updated.model_dump_json(),
                    request_id,
                )
        finally:
            await conn.close()
        return updated

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
            params.append(user_id)
            clauses.append(f"user_id = ${len(params)}")
        if status:
            params.append(AccountRequestStatus(status).value)
            clauses.append(f"status = ${len(params)}")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        conn = await self._connect()
        try:
            total = await conn.fetchval(
                f"SELECT COUNT(*) FROM account_requests{where}", *params
            )
            rows = await conn.fetch(
                f"SELECT document FROM account_requests{where} ORDER BY created_at DESC, id DESC "
                f"LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}",
                *params,
                limit,
                offset,
            )
        finally:
            await conn.close()
        return [self._to_model(r["document"]) for r in rows], total

    async def delete(self, request_id: str) -> bool:
        conn = await self._connect()
        try:
            result = await conn.execute(
                "DELETE FROM account_requests WHERE id = $1", request_id
            )
        finally:
            await conn.close()
        return result.endswith(" 1")

    async def status_counts(self) -> dict[AccountRequestStatus, int]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT status, COUNT(*) AS total FROM account_requests GROUP BY status"
            )
        finally:
            await conn.close()
        counts = {status: 0 for status in AccountRequestStatus}
        for row in rows:
            counts[AccountRequestStatus(row["status"])] = row["total"]
        return counts

    async def clear(self) -> None:
        conn = await self._connect()
        try:
            await conn.execute("DELETE FROM account_requests")
        finally:
            await conn.close()
