"""Guardrail client factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import PaddockConfig, load_config
from .base import BaseGuardrailClient, GuardrailClientError, get_guardrail_status
from .inmemory import InMemoryGuardrailClient
from .models import (
    ClaimCondition,
    GuardrailClaim,
    GuardrailClaimSpec,
    GuardrailClaimStatus,
    GuardrailStatus,
    claim_name_for,
)


_client_instance: BaseGuardrailClient | None = None


def guardrail_client_for(backend: str, config: PaddockConfig) -> BaseGuardrailClient:
    """Build a fresh guardrail client for ``backend``.

    Raises:
        ValueError: If ``backend`` is not ``inmemory`` or ``kubernetes``.
    """
    backend = backend.lower()
    if backend == "inmemory":
        return InMemoryGuardrailClient(
            namespace=config.guardrails.kubernetes.namespace,
            reconcile_delay=config.guardrails.reconcile_delay_seconds,
        )
    if backend == "kubernetes":
        from .kubernetes import KubernetesGuardrailClient

        return KubernetesGuardrailClient.from_config(config.guardrails.kubernetes)
    raise ValueError(f"Unsupported guardrail backend: {backend}")


def get_guardrail_client(
    backend: Optional[str] = None, config: Optional[PaddockConfig] = None
) -> BaseGuardrailClient:
    """Return the process-wide guardrail client.

    Rebuilt on the first call or when ``backend`` or ``config`` is given;
    otherwise cached, so claims created by one worker are visible to the next.
    """
    global _client_instance
    explicit = backend is not None or config is not None
    if _client_instance is None or explicit:
        config = config or load_config()
        backend = (
            backend
            or os.getenv("PADDOCK_GUARDRAIL_BACKEND")
            or config.guardrails.backend
        )
        _client_instance = guardrail_client_for(backend, config)
    return _client_instance


__all__ = [
    "BaseGuardrailClient",
    "ClaimCondition",
    "GuardrailClaim",
    "GuardrailClaimSpec",
    "GuardrailClaimStatus",
    "GuardrailClientError",
    "GuardrailStatus",
    "InMemoryGuardrailClient",
    "claim_name_for",
    "get_guardrail_client",
    "get_guardrail_status",
    "guardrail_client_for",
]
