"""Base interface for guardrail claim management."""

from __future__ import annotations

import abc
from typing import Optional

from ..contracts import PaddockError
from .models import GuardrailClaim, GuardrailClaimSpec, GuardrailStatus


class GuardrailClientError(PaddockError):
    """Raised when a guardrail claim operation fails."""


def get_guardrail_status(claim: GuardrailClaim) -> GuardrailStatus:
    """Reduce a claim's reconciliation status to ready / error / in progress.

    Providers disagree on whether ``Ready`` or ``Synced`` flips first, so the
    checks run in a fixed order:

    1. an explicit ``errorMessage`` is an error;
    2. ``Synced=True`` means the composition has been applied, which wins
       over whatever ``Ready`` says;
    3. ``Synced=False`` with reason ``ReconcileError`` is an error;
    4. ``Ready=True`` is accepted as secondary confirmation;
    5. ``Ready=False`` with reason ``Creating`` is still in progress;
    6. anything else is still in progress.

    A claim with no status block yet is in progress. After the
    ``errorMessage`` check, a composition that sets ``guardrailsApplied`` is
    ready without looking at the conditions.
    """
    status = claim.status
    if status is None:
        return GuardrailStatus(is_ready=False, status="guardrailing")

    if status.error_message:
        return GuardrailStatus(
            is_ready=False, status="error", error_message=status.error_message
        )

    if status.guardrails_applied is True:
        return GuardrailStatus(is_ready=True, status="guardrailed")

    synced = status.condition("Synced")
    ready = status.condition("Ready")

    if synced is not None and synced.status == "True":
        return GuardrailStatus(is_ready=True, status="guardrailed")

    if (
        synced is not None
        and synced.status == "False"
        and synced.reason == "ReconcileError"
    ):
        return GuardrailStatus(
            is_ready=False,
            status="error",
            error_message=(
                "Crossplane reconcile error: "
                f"{synced.message or 'Failed to reconcile guardrails'}"
            ),
        )

    if ready is not None and ready.status == "True":
        return GuardrailStatus(is_ready=True, status="guardrailed")

    if ready is not None and ready.status == "False" and ready.reason == "Creating":
        return GuardrailStatus(is_ready=False, status="guardrailing")

    return GuardrailStatus(is_ready=False, status="guardrailing")


class BaseGuardrailClient(metaclass=abc.ABCMeta):
    """Abstract client for GuardrailedAccountClaim resources."""

    @abc.abstractmethod
    async def create_claim(self, spec: GuardrailClaimSpec) -> GuardrailClaim:
        """Create a claim for ``spec.account_id``.

        Raises:
            GuardrailClientError: If the claim could not be created.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def get_claim(self, name: str) -> Optional[GuardrailClaim]:
        """Return the named claim, or ``None`` if it does not exist."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_claim_by_account_id(self, account_id: str) -> Optional[GuardrailClaim]:
        """Return the claim labelled with ``account_id``, if any."""
        raise NotImplementedError

    @abc.abstractmethod
    async def delete_claim(self, name: str) -> bool:
        """Delete the named claim. Deleting a missing claim succeeds."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release client resources (no-op by default)."""
        pass

    def get_guardrail_status(self, claim: GuardrailClaim) -> GuardrailStatus:
        return get_guardrail_status(claim)
