"""Core contracts for the paddock account provisioning state machine."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

Purpose = Literal["development", "staging", "production"]


class PaddockError(Exception):
    """Base class for paddock errors."""


class InvalidTransitionError(PaddockError):
    """Raised when a status change is not allowed by the transition table."""

    def __init__(self, current: "AccountRequestStatus", target: "AccountRequestStatus"):
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid status transition {current.value} -> {target.value}"
        )


class InvariantViolationError(PaddockError):
    """Raised when an update would leave a request in an inconsistent state."""


class RequestValidationError(PaddockError):
    """Raised by pre-flight validation hooks to reject a request."""


class WorkerBusyError(PaddockError):
    """Raised when a tick is requested while another one is still running."""


class AccountRequestStatus(str, Enum):
    """Lifecycle phases of an account request."""

    REQUESTED = "REQUESTED"
    VALIDATING = "VALIDATING"
    CREATING = "CREATING"
    GUARDRAILING = "GUARDRAILING"
    READY = "READY"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


ALLOWED_TRANSITIONS: Dict[AccountRequestStatus, FrozenSet[AccountRequestStatus]] = {
    AccountRequestStatus.REQUESTED: frozenset(
        {AccountRequestStatus.VALIDATING, AccountRequestStatus.FAILED}
    ),
    AccountRequestStatus.VALIDATING: frozenset(
        {AccountRequestStatus.CREATING, AccountRequestStatus.FAILED}
    ),
    AccountRequestStatus.CREATING: frozenset(
        {AccountRequestStatus.GUARDRAILING, AccountRequestStatus.FAILED}
    ),
    AccountRequestStatus.GUARDRAILING: frozenset(
        {AccountRequestStatus.READY, AccountRequestStatus.FAILED}
    ),
    AccountRequestStatus.READY: frozenset(),
    AccountRequestStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[AccountRequestStatus] = frozenset(
    {AccountRequestStatus.READY, AccountRequestStatus.FAILED}
)

# Processing order within a tick is irrelevant; this just keeps logs stable.
PENDING_STATUSES: tuple[AccountRequestStatus, ...] = (
    AccountRequestStatus.REQUESTED,
    AccountRequestStatus.VALIDATING,
    AccountRequestStatus.CREATING,
    AccountRequestStatus.GUARDRAILING,
)


def can_transition(current: AccountRequestStatus, target: AccountRequestStatus) -> bool:
    """Return ``True`` if ``current -> target`` is in the transition table."""
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(
    current: AccountRequestStatus, target: AccountRequestStatus
) -> None:
    """Validate a status change.

    Staying in the same non-terminal status is not a transition and is
    accepted, so derived fields can be recorded mid-phase. Anything touching a
    terminal request, or moving outside the table, raises
    :class:`InvalidTransitionError`.
    """
    if current.is_terminal:
        raise InvalidTransitionError(current, target)
    if current == target:
        return
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


class CreateAccountRequestInput(BaseModel):
    """User supplied fields for a new account request."""

    account_name: str = Field(min_length=1)
    owner_email: str
    purpose: Purpose
    primary_region: str = Field(min_length=1)
    budget_amount_usd: Optional[float] = Field(default=None, gt=0)
    budget_threshold_percent: Optional[int] = Field(default=None, ge=1, le=100)
    allowed_regions: Optional[List[str]] = None

    @field_validator("owner_email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format")
        return value
