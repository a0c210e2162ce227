import pytest

import paddock.guardrails as guardrails
import paddock.persistence as persistence


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep factory caches and PADDOCK_* settings from leaking between tests."""
    for name in (
        "PADDOCK_CONFIG",
        "PADDOCK_DATABASE_URL",
        "DATABASE_URL",
        "PADDOCK_LOG_LEVEL",
        "PADDOCK_GUARDRAIL_BACKEND",
        "PADDOCK_ORGANIZATIONS_BACKEND",
        "APP_NAMESPACE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PADDOCK_CONFIG", str(tmp_path / "missing-config.yaml"))
    persistence._repository_instance = None
    guardrails._client_instance = None
    yield
    persistence._repository_instance = None
    guardrails._client_instance = None
