"""In-memory guardrail claim store for tests and local runs."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

from .base import BaseGuardrailClient, GuardrailClientError
from .models import (
    ACCOUNT_ID_LABEL,
    ClaimCondition,
    GuardrailClaim,
    GuardrailClaimSpec,
    GuardrailClaimStatus,
    build_claim,
)


class InMemoryGuardrailClient(BaseGuardrailClient):
    """Keeps claims in a dict and simulates Crossplane reconciliation.

    A claim reports ``Synced=True`` once ``reconcile_delay`` seconds have
    passed since creation, unless a status was set explicitly with
    :meth:`set_status`.
    """

    def __init__(
        self,
        namespace: str = "default",
        reconcile_delay: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.namespace = namespace
        self.reconcile_delay = reconcile_delay
        self._clock = clock
        self._claims: Dict[str, GuardrailClaim] = {}
        self._created_at: Dict[str, float] = {}
        self._pinned: set[str] = set()

    async def create_claim(self, spec: GuardrailClaimSpec) -> GuardrailClaim:
        claim = build_claim(spec, namespace=self.namespace)
        if claim.name in self._claims:
            raise GuardrailClientError(
                f"Failed to create guardrail claim: {claim.name} already exists"
            )
        self._claims[claim.name] = claim
        self._created_at[claim.name] = self._clock()
        return claim.model_copy(deep=True)

    async def get_claim(self, name: str) -> Optional[GuardrailClaim]:
        claim = self._claims.get(name)
        if claim is None:
            return None
        self._reconcile(name)
        return self._claims[name].model_copy(deep=True)

    async def get_claim_by_account_id(self, account_id: str) -> Optional[GuardrailClaim]:
        for name, claim in self._claims.items():
            if claim.metadata.labels.get(ACCOUNT_ID_LABEL) == account_id:
                return await self.get_claim(name)
        return None

    async def delete_claim(self, name: str) -> bool:
        self._claims.pop(name, None)
        self._created_at.pop(name, None)
        self._pinned.discard(name)
        return True

    def set_status(self, name: str, status: GuardrailClaimStatus | dict[str, Any]) -> None:
        """Pin the observed status of a claim, bypassing simulated reconciliation."""
        if isinstance(status, dict):
            status = GuardrailClaimStatus.model_validate(status)
        self._claims[name].status = status
        self._pinned.add(name)

    def _reconcile(self, name: str) -> None:
        if name in self._pinned:
            return
        if self._clock() - self._created_at[name] < self.reconcile_delay:
            return
        self._claims[name].status = GuardrailClaimStatus(
            guardrails_applied=True,
            conditions=[
                ClaimCondition(type="Synced", status="True", reason="ReconcileSuccess"),
                ClaimCondition(type="Ready", status="True", reason="Available"),
            ],
        )
