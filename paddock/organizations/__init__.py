"""Account creation client factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import PaddockConfig, load_config
from .base import (
    BaseOrganizationsClient,
    CreateAccountResult,
    CreateAccountStatus,
    OrganizationsClientError,
)
from .mock import MockOrganizationsClient


def get_organizations_client(
    backend: Optional[str] = None, config: Optional[PaddockConfig] = None
) -> BaseOrganizationsClient:
    """Factory function to get the configured account creation client."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("PADDOCK_ORGANIZATIONS_BACKEND")
        or config.organizations.backend
    ).lower()

    if backend == "mock":
        return MockOrganizationsClient(delay=config.organizations.mock_delay_seconds)
    else:
        raise ValueError(f"Unsupported organizations backend: {backend}")


__all__ = [
    "BaseOrganizationsClient",
    "CreateAccountResult",
    "CreateAccountStatus",
    "MockOrganizationsClient",
    "OrganizationsClientError",
    "get_organizations_client",
]
