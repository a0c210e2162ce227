"""Base interface for the account creation service."""

from __future__ import annotations

import abc
from typing import Literal, Optional

from pydantic import BaseModel

from ..contracts import PaddockError

CreateAccountState = Literal["IN_PROGRESS", "SUCCEEDED", "FAILED"]


class OrganizationsClientError(PaddockError):
    """Raised when an account creation call is rejected outright."""


class CreateAccountResult(BaseModel):
    """Handle returned when an account creation is started."""

    create_request_id: str


class CreateAccountStatus(BaseModel):
    """Snapshot of an asynchronous account creation."""

    create_request_id: str
    state: CreateAccountState
    account_id: Optional[str] = None
    failure_reason: Optional[str] = None


class BaseOrganizationsClient(metaclass=abc.ABCMeta):
    """Abstract client for AWS Organizations style account creation.

    ``create_account`` must return as soon as the operation is accepted;
    completion is observed by polling ``describe_create_account_status``.
    """

    @abc.abstractmethod
    async def create_account(
        self, account_name: str, owner_email: str
    ) -> CreateAccountResult:
        """Start creating an account and return its tracking id.

        Raises:
            OrganizationsClientError: If the input is clearly invalid.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def describe_create_account_status(
        self, create_request_id: str
    ) -> CreateAccountStatus:
        """Return the current state of an account creation. Idempotent."""
        raise NotImplementedError
