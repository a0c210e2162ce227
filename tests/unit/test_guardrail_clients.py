"""Tests for the in-memory and Kubernetes guardrail claim clients."""

import json

import httpx
import pytest

from paddock.guardrails import (
    GuardrailClaimSpec,
    GuardrailClientError,
    InMemoryGuardrailClient,
    claim_name_for,
)
from paddock.guardrails.kubernetes import KubernetesGuardrailClient
from paddock.guardrails.models import ACCOUNT_ID_LABEL, MANAGED_BY_LABEL

COLLECTION = (
    "/apis/platform.porsche.com/v1alpha1/namespaces/platform/guardrailedaccountclaims"
)


def _spec(account_id="123456789012"):
    return GuardrailClaimSpec(
        account_id=account_id,
        account_name="Test Account",
        role_arn=f"arn:aws:iam::{account_id}:role/CrossplaneRole",
        owner_email="test@example.com",
    )


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_inmemory_claim_reconciles_after_delay():
    clock = FakeClock()
    client = InMemoryGuardrailClient(namespace="platform", reconcile_delay=5, clock=clock)

    claim = await client.create_claim(_spec())
    assert claim.name == claim_name_for("123456789012") == "guardrailed-aws-123456789012"
    assert claim.metadata.namespace == "platform"
    assert claim.metadata.labels[ACCOUNT_ID_LABEL] == "123456789012"
    assert claim.metadata.labels[MANAGED_BY_LABEL] == "paddock"

    pending = await client.get_claim(claim.name)
    assert client.get_guardrail_status(pending).status == "guardrailing"

    clock.now = 5
    done = await client.get_claim(claim.name)
    status = client.get_guardrail_status(done)
    assert status.is_ready is True
    assert status.status == "guardrailed"


@pytest.mark.asyncio
async def test_inmemory_duplicate_claim_is_rejected():
    client = InMemoryGuardrailClient()
    await client.create_claim(_spec())

    with pytest.raises(GuardrailClientError):
        await client.create_claim(_spec())


@pytest.mark.asyncio
async def test_inmemory_lookup_pin_and_delete():
    client = InMemoryGuardrailClient()
    claim = await client.create_claim(_spec())
    client.set_status(claim.name, {"errorMessage": "Budget creation denied"})

    found = await client.get_claim_by_account_id("123456789012")
    assert found.name == claim.name
    status = client.get_guardrail_status(found)
    assert status.status == "error"
    assert status.error_message == "Budget creation denied"
    assert await client.get_claim_by_account_id("000000000000") is None

    assert await client.delete_claim(claim.name) is True
    assert await client.delete_claim(claim.name) is True
    assert await client.get_claim(claim.name) is None


def _kube_client(handler):
    transport = httpx.MockTransport(handler)
    http_client = httpx.AsyncClient(transport=transport, base_url="https://k8s.test")
    return KubernetesGuardrailClient(namespace="platform", http_client=http_client)


@pytest.mark.asyncio
async def test_kubernetes_create_claim_posts_resource():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=seen["body"])

    client = _kube_client(handler)
    claim = await client.create_claim(_spec())
    await client.close()

    assert seen["method"] == "POST"
    assert seen["path"] == COLLECTION
    body = seen["body"]
    assert body["apiVersion"] == "platform.porsche.com/v1alpha1"
    assert body["kind"] == "GuardrailedAccountClaim"
    assert body["metadata"]["name"] == "guardrailed-aws-123456789012"
    assert body["metadata"]["namespace"] == "platform"
    assert body["spec"]["accountId"] == "123456789012"
    assert body["spec"]["budgetAmountUSD"] == 100
    assert body["spec"]["allowedRegions"] == ["us-east-1", "eu-west-1"]
    assert claim.name == "guardrailed-aws-123456789012"


@pytest.mark.asyncio
async def test_kubernetes_create_failure_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"reason": "AlreadyExists"})

    client = _kube_client(handler)

    with pytest.raises(GuardrailClientError) as exc_info:
        await client.create_claim(_spec())
    assert str(exc_info.value).startswith("Failed to create guardrail claim:")


@pytest.mark.asyncio
async def test_kubernetes_get_and_delete_handle_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"reason": "NotFound"})

    client = _kube_client(handler)

    assert await client.get_claim("guardrailed-aws-1") is None
    assert await client.delete_claim("guardrailed-aws-1") is True


@pytest.mark.asyncio
async def test_kubernetes_get_claim_parses_status():
    resource = {
        "apiVersion": "platform.porsche.com/v1alpha1",
        "kind": "GuardrailedAccountClaim",
        "metadata": {"name": "guardrailed-aws-123456789012", "namespace": "platform"},
        "spec": _spec().model_dump(by_alias=True),
        "status": {
            "conditions": [
                {"type": "Synced", "status": "True"},
                {"type": "Ready", "status": "False", "reason": "Creating"},
            ]
        },
    }

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == f"{COLLECTION}/guardrailed-aws-123456789012"
        return httpx.Response(200, json=resource)

    client = _kube_client(handler)
    claim = await client.get_claim("guardrailed-aws-123456789012")

    status = client.get_guardrail_status(claim)
    assert status.is_ready is True
    assert status.status == "guardrailed"


@pytest.mark.asyncio
async def test_kubernetes_lookup_by_account_uses_label_selector():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["selector"] = request.url.params.get("labelSelector")
        return httpx.Response(200, json={"items": []})

    client = _kube_client(handler)

    assert await client.get_claim_by_account_id("123456789012") is None
    assert seen["selector"] == f"{ACCOUNT_ID_LABEL}=123456789012"


def test_kubernetes_client_reads_service_account_token(tmp_path):
    token_file = tmp_path / "token"
    token_file.write_text("secret-token\n")

    client = KubernetesGuardrailClient(
        api_server="https://k8s.test", token_path=str(token_file)
    )

    assert client._client.headers["Authorization"] == "Bearer secret-token"
