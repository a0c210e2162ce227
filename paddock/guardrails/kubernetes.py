"""Guardrail claims backed by the Kubernetes custom objects API."""

from __future__ import annotations

import logging
import os
from typing import Optional

import httpx

from ..config import KubernetesConfig
from .base import BaseGuardrailClient, GuardrailClientError
from .models import (
    ACCOUNT_ID_LABEL,
    GROUP,
    PLURAL,
    VERSION,
    GuardrailClaim,
    GuardrailClaimSpec,
    build_claim,
)

logger = logging.getLogger(__name__)


class KubernetesGuardrailClient(BaseGuardrailClient):
    """Manage GuardrailedAccountClaim objects through the API server's REST API.

    Args:
        api_server: Base URL of the Kubernetes API server.
        namespace: Namespace the claims live in.
        token: Bearer token. Read from ``token_path`` when not given.
        token_path: Service account token file used as a fallback.
        verify: TLS verification flag or CA bundle path.
        timeout: Request timeout in seconds.
        http_client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        api_server: str = "https://kubernetes.default.svc",
        namespace: str = "default",
        *,
        token: Optional[str] = None,
        token_path: Optional[str] = None,
        verify: bool | str = True,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.namespace = namespace
        if http_client is None:
            token = token or self._read_token(token_path)
            headers = {"Accept": "application/json"}
            if token:
                headers["Authorization"] = f"Bearer {token}"
            http_client = httpx.AsyncClient(
                base_url=api_server, headers=headers, verify=verify, timeout=timeout
            )
        self._client = http_client

    @classmethod
    def from_config(cls, config: KubernetesConfig) -> "KubernetesGuardrailClient":
        return cls(
            api_server=config.api_server,
            namespace=config.namespace,
            token=config.token,
            token_path=config.token_path,
            verify=config.verify,
            timeout=config.timeout,
        )

    @staticmethod
    def _read_token(token_path: Optional[str]) -> Optional[str]:
        if token_path and os.path.exists(token_path):
            with open(token_path) as f:
                return f.read().strip()
        return None

    @property
    def _collection_path(self) -> str:
        return f"/apis/{GROUP}/{VERSION}/namespaces/{self.namespace}/{PLURAL}"

    # ------------------------------------------------------------------
    async def create_claim(self, spec: GuardrailClaimSpec) -> GuardrailClaim:
        claim = build_claim(spec, namespace=self.namespace)
        try:
            response = await self._client.post(
                self._collection_path, json=claim.to_resource()
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to create GuardrailedAccountClaim {claim.name}: {e}")
            raise GuardrailClientError(f"Failed to create guardrail claim: {e}") from e
        return GuardrailClaim.model_validate(response.json())

    async def get_claim(self, name: str) -> Optional[GuardrailClaim]:
        response = await self._client.get(f"{self._collection_path}/{name}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return GuardrailClaim.model_validate(response.json())

    async def get_claim_by_account_id(self, account_id: str) -> Optional[GuardrailClaim]:
        response = await self._client.get(
            self._collection_path,
            params={"labelSelector": f"{ACCOUNT_ID_LABEL}={account_id}"},
        )
        response.raise_for_status()
        items = response.json().get("items", [])
        return GuardrailClaim.model_validate(items[0]) if items else None

    async def delete_claim(self, name: str) -> bool:
        response = await self._client.delete(f"{self._collection_path}/{name}")
        if response.status_code == 404:
            return True
        response.raise_for_status()
        return True

    async def close(self) -> None:
        await self._client.aclose()
