"""Paddock: account provisioning worker for the team platform."""

from .contracts import (
    AccountRequestStatus,
    CreateAccountRequestInput,
    InvalidTransitionError,
    InvariantViolationError,
    PaddockError,
    RequestValidationError,
    WorkerBusyError,
)
from .guardrails import get_guardrail_client, get_guardrail_status
from .organizations import MockOrganizationsClient, get_organizations_client
from .persistence import AccountRequest, get_repository
from .worker import ProvisioningWorker, TickResult, process_once, unique_account_name

__version__ = "0.1.0"
__all__ = [
    "AccountRequest",
    "AccountRequestStatus",
    "CreateAccountRequestInput",
    "InvalidTransitionError",
    "InvariantViolationError",
    "MockOrganizationsClient",
    "PaddockError",
    "ProvisioningWorker",
    "RequestValidationError",
    "TickResult",
    "WorkerBusyError",
    "get_guardrail_client",
    "get_guardrail_status",
    "get_organizations_client",
    "get_repository",
    "process_once",
    "unique_account_name",
]
