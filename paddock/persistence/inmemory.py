"""In-memory implementation of the account request repository."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Dict, Optional

from ..contracts import AccountRequestStatus, CreateAccountRequestInput
from .models import AccountRequest, apply_changes, new_request_id
from .repository import AccountRequestRepository


class InMemoryAccountRequestRepository(AccountRequestRepository):
    """Store account requests in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._requests: Dict[str, AccountRequest] = {}
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    async def create(
        self, data: CreateAccountRequestInput, user_id: str
    ) -> AccountRequest:
        async with self._lock:
            request = AccountRequest.from_input(
                new_request_id(next(self._sequence)), user_id, data
            )
            self._requests[request.id] = request
        return request.model_copy(deep=True)

    async def get(self, request_id: str) -> AccountRequest | None:
        request = self._requests.get(request_id)
        return request.model_copy(deep=True) if request else None

    async def find_by_status(
        self, status: AccountRequestStatus
    ) -> list[AccountRequest]:
        return [
            r.model_copy(deep=True)
            for r in list(self._requests.values())
            if r.status == status
        ]

    async def find_by_user(self, user_id: str) -> list[AccountRequest]:
        requests, _ = await self.list_requests(user_id=user_id, limit=len(self._requests))
        return requests

    async def find_by_aws_account_id(self, account_id: str) -> AccountRequest | None:
        for request in list(self._requests.values()):
            if request.aws_account_id == account_id:
                return request.model_copy(deep=True)
        return None

    async def update(self, request_id: str, **changes: Any) -> AccountRequest | None:
        async with self._lock:
            existing = self._requests.get(request_id)
            if existing is None:
                return None
            # records are replaced wholesale so concurrent readers never see a
            # half-applied update
            updated = apply_changes(existing, changes)
            self._requests[request_id] = updated
        return updated.model_copy(deep=True)

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
        filtered = list(self._requests.values())
        if user_id:
            filtered = [r for r in filtered if r.user_id == user_id]
        if status:
            filtered = [r for r in filtered if r.status == status]
        # newest first; ties keep the most recently inserted first
        filtered.sort(key=lambda r: r.created_at)
        filtered.reverse()
        page = filtered[offset : offset + limit]
        return [r.model_copy(deep=True) for r in page], len(filtered)

    async def delete(self, request_id: str) -> bool:
        async with self._lock:
            return self._requests.pop(request_id, None) is not None

    async def status_counts(self) -> dict[AccountRequestStatus, int]:
        counts = {status: 0 for status in AccountRequestStatus}
        for request in list(self._requests.values()):
            counts[request.status] += 1
        return counts

    async def clear(self) -> None:
        async with self._lock:
            self._requests.clear()
            self._sequence = itertools.count(1)
