"""Data models for persisted account request state."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from ..contracts import (
    AccountRequestStatus,
    CreateAccountRequestInput,
    InvariantViolationError,
    Purpose,
    ensure_transition,
)

# Fields the worker may change after creation.
MUTABLE_FIELDS = frozenset(
    {
        "status",
        "aws_request_id",
        "aws_account_id",
        "guardrail_claim_name",
        "error_message",
    }
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountRequest(BaseModel):
    """A tracked request to provision a new AWS account."""

    id: str
    user_id: str
    status: AccountRequestStatus = AccountRequestStatus.REQUESTED

    account_name: str
    owner_email: str
    purpose: Purpose
    primary_region: str
    budget_amount_usd: Optional[float] = None
    budget_threshold_percent: Optional[int] = None
    allowed_regions: Optional[List[str]] = None

    aws_request_id: Optional[str] = None
    aws_account_id: Optional[str] = None
    guardrail_claim_name: Optional[str] = None
    error_message: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @classmethod
    def from_input(
        cls, request_id: str, user_id: str, data: CreateAccountRequestInput
    ) -> "AccountRequest":
        now = utcnow()
        return cls(
            id=request_id,
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


def apply_changes(record: AccountRequest, changes: dict[str, Any]) -> AccountRequest:
    """Return a new record with ``changes`` merged into ``record``.

    Shared by all repository backends so the transition rules and timestamp
    bookkeeping are identical regardless of storage.
    """
    unknown = set(changes) - MUTABLE_FIELDS
    if unknown:
        raise InvariantViolationError(
            f"Fields cannot be updated: {', '.join(sorted(unknown))}"
        )

    target = AccountRequestStatus(changes.get("status", record.status))
    ensure_transition(record.status, target)

    merged = record.model_dump()
    merged.update(changes)
    merged["status"] = target

    if target == AccountRequestStatus.GUARDRAILING and not merged.get("aws_account_id"):
        raise InvariantViolationError(
            f"Request {record.id} cannot enter GUARDRAILING without an AWS account id"
        )

    now = utcnow()
    merged["updated_at"] = now
    if target.is_terminal:
        merged["completed_at"] = now
    return AccountRequest(**merged)


def new_request_id(sequence: Optional[int] = None) -> str:
    """Generate a request id of the form ``req-<epoch-millis>-<suffix>``.

    Backends with a process-local counter pass it as ``sequence``; shared
    databases get a random suffix instead.
    """
    millis = int(utcnow().timestamp() * 1000)
    suffix = str(sequence) if sequence is not None else uuid.uuid4().hex[:12]
    return f"req-{millis}-{suffix}"
