"""Repository abstraction for account request persistence."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from ..contracts import AccountRequestStatus, CreateAccountRequestInput
from .models import AccountRequest


class AccountRequestRepository(Protocol):
    """Protocol for account request persistence backends.

    Reads return snapshots; callers mutate state only through ``update`` and
    ``update_status``, which are atomic per record.
    """

    async def create(
        self, data: CreateAccountRequestInput, user_id: str
    ) -> AccountRequest:
        """Persist a new request in REQUESTED status."""

    async def get(self, request_id: str) -> AccountRequest | None:
        """Retrieve a request by id."""

    async def find_by_status(
        self, status: AccountRequestStatus
    ) -> list[AccountRequest]:
        """Return all requests currently in ``status``."""

    async def find_by_user(self, user_id: str) -> list[AccountRequest]:
        """Return a user's requests, newest first."""

    async def find_by_aws_account_id(self, account_id: str) -> AccountRequest | None:
        """Return the request that provisioned ``account_id``."""

    async def update(self, request_id: str, **changes: Any) -> AccountRequest | None:
        """Merge provisioning fields into a request and bump ``updated_at``."""

    async def update_status(
        self,
        request_id: str,
        status: AccountRequestStatus,
        error_message: Optional[str] = None,
    ) -> AccountRequest | None:
        """Move a request to ``status``, optionally recording an error."""

    async def list_requests(
        self,
        user_id: Optional[str] = None,
        status: Optional[AccountRequestStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AccountRequest], int]:
        """Return a page of requests, newest first, and the unpaged total."""

    async def delete(self, request_id: str) -> bool:
        """Remove a request. Administrative only; the worker never deletes."""

    async def status_counts(self) -> dict[AccountRequestStatus, int]:
        """Return the number of requests per status."""

    async def clear(self) -> None:
        """Drop every request."""
