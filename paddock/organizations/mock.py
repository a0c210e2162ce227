"""In-memory account creation service for tests and local runs."""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..contracts import EMAIL_PATTERN
from .base import (
    BaseOrganizationsClient,
    CreateAccountResult,
    CreateAccountStatus,
    OrganizationsClientError,
)


@dataclass
class _Operation:
    ready_at: float
    account_id: str
    failure_reason: Optional[str] = None


class MockOrganizationsClient(BaseOrganizationsClient):
    """Simulates AWS Organizations' multi-second account creation.

    Args:
        delay: Seconds before an operation reports SUCCEEDED (or FAILED).
        fail_accounts: Account names whose creation should fail, mapped to the
            failure reason to report.
        clock: Monotonic time source, overridable in tests.
    """

    def __init__(
        self,
        delay: float = 2.0,
        fail_accounts: Optional[Dict[str, str]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.delay = delay
        self.fail_accounts = dict(fail_accounts or {})
        self._clock = clock
        self._seq = itertools.count(1)
        self._operations: Dict[str, _Operation] = {}

    async def create_account(
        self, account_name: str, owner_email: str
    ) -> CreateAccountResult:
        if not account_name:
            raise OrganizationsClientError("Account name must not be empty")
        if not EMAIL_PATTERN.match(owner_email or ""):
            raise OrganizationsClientError(f"Invalid email address: {owner_email}")

        seq = next(self._seq)
        create_request_id = f"mock-{seq}"
        self._operations[create_request_id] = _Operation(
            ready_at=self._clock() + self.delay,
            account_id=f"acct-{seq}",
            failure_reason=self.fail_accounts.get(account_name),
        )
        return CreateAccountResult(create_request_id=create_request_id)

    async def describe_create_account_status(
        self, create_request_id: str
    ) -> CreateAccountStatus:
        op = self._operations.get(create_request_id)
        if op is None:
            return CreateAccountStatus(
                create_request_id=create_request_id,
                state="FAILED",
                failure_reason="not_found",
            )
        if self._clock() < op.ready_at:
            return CreateAccountStatus(
                create_request_id=create_request_id, state="IN_PROGRESS"
            )
        if op.failure_reason is not None:
            return CreateAccountStatus(
                create_request_id=create_request_id,
                state="FAILED",
                failure_reason=op.failure_reason,
            )
        return CreateAccountStatus(
            create_request_id=create_request_id,
            state="SUCCEEDED",
            account_id=op.account_id,
        )
