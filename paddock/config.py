from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field


class WorkerConfig(BaseModel):
    """Provisioning worker settings."""

    interval_seconds: float = Field(default=2.0, gt=0)
    # None disables the stuck-request timeout
    stuck_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    role_name: str = "OrganizationAccountAccessRole"


class OrganizationsConfig(BaseModel):
    """Account creation backend settings."""

    backend: Literal["mock"] = "mock"
    mock_delay_seconds: float = Field(default=2.0, ge=0)


class KubernetesConfig(BaseModel):
    """Connection settings for the Kubernetes API server."""

    api_server: str = "https://kubernetes.default.svc"
    token: Optional[str] = None
    token_path: str = "/var/run/secrets/kubernetes.io/serviceaccount/token"
    namespace: str = "default"
    verify: bool | str = True
    timeout: float = 30.0


class GuardrailConfig(BaseModel):
    """Guardrail claim backend settings."""

    backend: Literal["inmemory", "kubernetes"] = "inmemory"
    reconcile_delay_seconds: float = Field(default=0.0, ge=0)
    kubernetes: KubernetesConfig = KubernetesConfig()


class PaddockConfig(BaseModel):
    """Top-level configuration model."""

    worker: WorkerConfig = WorkerConfig()
    organizations: OrganizationsConfig = OrganizationsConfig()
    guardrails: GuardrailConfig = GuardrailConfig()
    database_url: Optional[str] = None
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> PaddockConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to PADDOCK_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("PADDOCK_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = PaddockConfig(**data)
    else:
        config = PaddockConfig()

    env_db_url = os.getenv("PADDOCK_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_namespace = os.getenv("APP_NAMESPACE")
    if env_namespace:
        config.guardrails.kubernetes.namespace = env_namespace
    env_log_level = os.getenv("PADDOCK_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level
    return config
