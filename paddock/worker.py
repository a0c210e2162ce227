"""Account provisioning worker for paddock.

The worker is a polling reconciliation loop. Each tick loads every request
that has not reached a terminal status and moves it at most one phase along

    REQUESTED -> VALIDATING -> CREATING -> GUARDRAILING -> READY | FAILED

calling out to the account creation service and the guardrail claim API as
needed. A failure while handling one request marks that request FAILED and
never stops the rest of the tick.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from pydantic import BaseModel, Field

from .config import PaddockConfig, load_config
from .contracts import (
    PENDING_STATUSES,
    AccountRequestStatus,
    PaddockError,
    RequestValidationError,
    WorkerBusyError,
)
from .guardrails import (
    BaseGuardrailClient,
    GuardrailClaim,
    GuardrailClaimSpec,
    get_guardrail_client,
)
from .organizations import BaseOrganizationsClient
from .persistence import AccountRequest, AccountRequestRepository, get_repository
from .persistence.models import utcnow

logger = logging.getLogger(__name__)

ValidationHook = Callable[[AccountRequest, AccountRequestRepository], Awaitable[None]]

ADVANCED = "advanced"
UPDATED = "updated"
UNCHANGED = "unchanged"
FAILED = "failed"
STUCK = "stuck"
SKIPPED = "skipped"


class _RequestVanished(PaddockError):
    """The request was removed from the store while being processed."""


class TickResult(BaseModel):
    """Request ids grouped by what happened to them during one tick."""

    advanced: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)
    unchanged: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    stuck: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)

    def record(self, request_id: str, outcome: str) -> None:
        getattr(self, outcome).append(request_id)

    @property
    def processed(self) -> int:
        return sum(
            len(ids)
            for ids in (
                self.advanced,
                self.updated,
                self.unchanged,
                self.failed,
                self.stuck,
                self.skipped,
            )
        )


async def unique_account_name(
    request: AccountRequest, repository: AccountRequestRepository
) -> None:
    """Reject a request whose account name is taken by an older live request."""
    for status in AccountRequestStatus:
        if status == AccountRequestStatus.FAILED:
            continue
        for other in await repository.find_by_status(status):
            if other.id == request.id or other.account_name != request.account_name:
                continue
            if (other.created_at, other.id) < (request.created_at, request.id):
                raise RequestValidationError(
                    f"Account name '{request.account_name}' is already used by request {other.id}"
                )


class ProvisioningWorker:
    """Drives account requests through the provisioning state machine."""

    def __init__(
        self,
        organizations: BaseOrganizationsClient,
        guardrails: BaseGuardrailClient | None = None,
        repository: AccountRequestRepository | None = None,
        *,
        interval: float = 2.0,
        validators: Optional[Sequence[ValidationHook]] = None,
        stuck_timeout: Optional[float] = None,
        role_name: str = "OrganizationAccountAccessRole",
    ) -> None:
        self._organizations = organizations
        self._guardrails = guardrails or get_guardrail_client()
        self._repository = repository or get_repository()
        self.interval = interval
        self.validators: List[ValidationHook] = list(validators or [])
        self.stuck_timeout = stuck_timeout
        self.role_name = role_name

        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None
        self._tick_in_progress = False

    @classmethod
    def from_config(
        cls,
        organizations: BaseOrganizationsClient,
        config: Optional[PaddockConfig] = None,
        **kwargs: Any,
    ) -> "ProvisioningWorker":
        """Build a worker using the ``worker`` section of the configuration."""
        config = config or load_config()
        if kwargs.get("guardrails") is None:
            kwargs["guardrails"] = get_guardrail_client(config=config)
        if kwargs.get("repository") is None:
            kwargs["repository"] = get_repository(config=config)
        return cls(
            organizations,
            interval=config.worker.interval_seconds,
            stuck_timeout=config.worker.stuck_timeout_seconds,
            role_name=config.worker.role_name,
            **kwargs,
        )

    @property
    def repository(self) -> AccountRequestRepository:
        return self._repository

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Lifecycle
    async def start(self) -> None:
        """Start ticking in the background. Calling it twice is a no-op."""
        if self.is_running:
            logger.info("Account worker already running")
            return

        logger.info(
            f"Starting account provisioning worker (poll interval: {self.interval}s)"
        )
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stop_event))

    async def stop(self) -> None:
        """Stop ticking.

        A tick already in flight is allowed to finish; no new tick starts once
        this returns. Calling it when the worker is not running is a no-op.
        """
        if self._task is None:
            return
        task, self._task = self._task, None
        if self._stop_event is not None:
            self._stop_event.set()
        await task
        logger.info("Account worker stopped")

    async def run(self, lifespan: Optional[float] = None) -> None:
        """Run the worker in the foreground.

        Args:
            lifespan: Seconds to keep running. If None, runs until cancelled.
        """
        await self.start()
        task = self._task
        try:
            if lifespan is not None:
                await asyncio.sleep(lifespan)
            elif task is not None:
                await task
        finally:
            await self.stop()

    async def _loop(self, stop_event: asyncio.Event) -> None:
        # ticks run back to back in this single task, so they never overlap
        while not stop_event.is_set():
            try:
                await self.process_once()
            except Exception:
                logger.exception("Account worker error")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    # ------------------------------------------------------------------
    # Tick
    async def process_once(self) -> TickResult:
        """Run a single reconciliation pass over all pending requests.

        Raises:
            WorkerBusyError: If another pass on this worker is still running.
        """
        if self._tick_in_progress:
            raise WorkerBusyError("A worker tick is already in progress")
        self._tick_in_progress = True
        try:
            return await self._tick()
        finally:
            self._tick_in_progress = False

    async def _tick(self) -> TickResult:
        result = TickResult()
        pending: List[AccountRequest] = []
        try:
            for status in PENDING_STATUSES:
                pending.extend(await self._repository.find_by_status(status))
        except Exception:
            logger.exception("Failed to load pending account requests")
            return result

        for request in pending:
            await self._process_request(request, result)

        if pending:
            logger.debug(
                f"Tick processed {result.processed} requests: "
                f"{len(result.advanced)} advanced, {len(result.failed)} failed"
            )
        return result

    async def _process_request(self, request: AccountRequest, result: TickResult) -> None:
        try:
            outcome = await self._advance(request)
        except _RequestVanished:
            logger.warning(f"Request {request.id} disappeared during processing")
            outcome = SKIPPED
        except Exception as e:
            logger.exception(f"Worker error while processing request {request.id}")
            outcome = await self._fail(request, f"Worker error: {e}")
        result.record(request.id, outcome)

    async def _advance(self, request: AccountRequest) -> str:
        handlers = {
            AccountRequestStatus.REQUESTED: self._handle_requested,
            AccountRequestStatus.VALIDATING: self._handle_validating,
            AccountRequestStatus.CREATING: self._handle_creating,
            AccountRequestStatus.GUARDRAILING: self._handle_guardrailing,
        }
        outcome = await handlers[request.status](request)
        if outcome == UNCHANGED and self._timed_out(request):
            return await self._fail(
                request,
                f"Timed out after {self.stuck_timeout:g}s in {request.status.value}",
            )
        return outcome

    # ------------------------------------------------------------------
    # Phase handlers
    async def _handle_requested(self, request: AccountRequest) -> str:
        # Pre-flight checks (quotas, uniqueness, permissions) plug in here.
        try:
            for validate in self.validators:
                await validate(request, self._repository)
        except RequestValidationError as e:
            return await self._fail(request, f"Validation failed: {e}")

        await self._transition(request, AccountRequestStatus.VALIDATING)
        return ADVANCED

    async def _handle_validating(self, request: AccountRequest) -> str:
        created = await self._organizations.create_account(
            request.account_name, request.owner_email
        )
        await self._transition(
            request,
            AccountRequestStatus.CREATING,
            aws_request_id=created.create_request_id,
        )
        return ADVANCED

    async def _handle_creating(self, request: AccountRequest) -> str:
        if not request.aws_request_id:
            logger.error(
                f"Request {request.id} is CREATING without an AWS request id; skipping"
            )
            return STUCK

        status = await self._organizations.describe_create_account_status(
            request.aws_request_id
        )
        if status.state == "SUCCEEDED" and status.account_id:
            await self._transition(
                request,
                AccountRequestStatus.GUARDRAILING,
                aws_account_id=status.account_id,
            )
            return ADVANCED
        if status.state == "FAILED":
            return await self._fail(
                request,
                f"AWS account creation failed: {status.failure_reason or 'unknown'}",
            )
        if status.state == "SUCCEEDED":
            logger.warning(
                f"Account creation {request.aws_request_id} succeeded without an account id"
            )
        logger.debug(f"Request {request.id} still CREATING ({request.aws_request_id})")
        return UNCHANGED

    async def _handle_guardrailing(self, request: AccountRequest) -> str:
        if not request.aws_account_id:
            logger.error(
                f"Request {request.id} is GUARDRAILING without an AWS account id; skipping"
            )
            return STUCK

        if not request.guardrail_claim_name:
            claim = await self._ensure_claim(request)
            await self._record(request, guardrail_claim_name=claim.name)
            logger.info(
                f"Created guardrail claim {claim.name} for request {request.id}"
            )
            return UPDATED

        claim = await self._guardrails.get_claim(request.guardrail_claim_name)
        if claim is None:
            return await self._fail(
                request,
                f"Guardrail application failed: claim {request.guardrail_claim_name} not found",
            )

        guardrail = self._guardrails.get_guardrail_status(claim)
        if guardrail.is_ready:
            await self._transition(request, AccountRequestStatus.READY)
            return ADVANCED
        if guardrail.status == "error":
            return await self._fail(
                request, f"Guardrail application failed: {guardrail.error_message}"
            )
        logger.debug(f"Request {request.id} still GUARDRAILING ({claim.name})")
        return UNCHANGED

    async def _ensure_claim(self, request: AccountRequest) -> GuardrailClaim:
        # A claim left over from an interrupted tick is adopted rather than
        # recreated.
        existing = await self._guardrails.get_claim_by_account_id(request.aws_account_id)
        if existing is not None:
            return existing
        return await self._guardrails.create_claim(self.claim_spec_for(request))

    def claim_spec_for(self, request: AccountRequest) -> GuardrailClaimSpec:
        """Build the guardrail claim spec for a provisioned request."""
        overrides = {
            "budget_amount_usd": request.budget_amount_usd,
            "budget_threshold_percent": request.budget_threshold_percent,
            "primary_region": request.primary_region,
            "allowed_regions": request.allowed_regions,
        }
        return GuardrailClaimSpec(
            account_id=request.aws_account_id,
            account_name=request.account_name,
            role_arn=f"arn:aws:iam::{request.aws_account_id}:role/{self.role_name}",
            owner_email=request.owner_email,
            **{k: v for k, v in overrides.items() if v is not None},
        )

    # ------------------------------------------------------------------
    # Store helpers
    async def _transition(
        self, request: AccountRequest, status: AccountRequestStatus, **changes: Any
    ) -> AccountRequest:
        updated = await self._repository.update(request.id, status=status, **changes)
        if updated is None:
            raise _RequestVanished(request.id)
        logger.info(
            f"Request {request.id}: {request.status.value} -> {status.value}"
        )
        return updated

    async def _record(self, request: AccountRequest, **changes: Any) -> AccountRequest:
        updated = await self._repository.update(request.id, **changes)
        if updated is None:
            raise _RequestVanished(request.id)
        return updated

    async def _fail(self, request: AccountRequest, message: str) -> str:
        try:
            updated = await self._repository.update_status(
                request.id, AccountRequestStatus.FAILED, message
            )
        except Exception:
            logger.exception(f"Could not record failure for request {request.id}")
            return SKIPPED
        if updated is None:
            logger.warning(f"Request {request.id} disappeared before it could fail")
            return SKIPPED
        logger.warning(f"Request {request.id} failed: {message}")
        return FAILED

    def _timed_out(self, request: AccountRequest) -> bool:
        if self.stuck_timeout is None:
            return False
        if request.status not in (
            AccountRequestStatus.CREATING,
            AccountRequestStatus.GUARDRAILING,
        ):
            return False
        return (utcnow() - request.updated_at).total_seconds() > self.stuck_timeout


async def process_once(
    organizations: BaseOrganizationsClient,
    guardrails: BaseGuardrailClient | None = None,
    repository: AccountRequestRepository | None = None,
) -> TickResult:
    """Run one tick with a throwaway worker."""
    worker = ProvisioningWorker(organizations, guardrails, repository)
    return await worker.process_once()
