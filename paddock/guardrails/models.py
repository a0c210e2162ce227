"""Models mirroring the GuardrailedAccountClaim custom resource."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

GROUP = "platform.porsche.com"
VERSION = "v1alpha1"
PLURAL = "guardrailedaccountclaims"
KIND = "GuardrailedAccountClaim"
ACCOUNT_ID_LABEL = "guardrail.platform.porsche.com/account-id"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY = "paddock"

DEFAULT_BUDGET_AMOUNT_USD = 100
DEFAULT_BUDGET_THRESHOLD_PERCENT = 80
DEFAULT_PRIMARY_REGION = "us-east-1"
DEFAULT_ALLOWED_REGIONS = ["us-east-1", "eu-west-1"]

GuardrailPhase = Literal["guardrailing", "guardrailed", "error"]


class _ResourceModel(BaseModel):
    # Kubernetes speaks camelCase; Python code uses the field names.
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GuardrailClaimSpec(_ResourceModel):
    """Desired guardrails for one account."""

    account_id: str = Field(alias="accountId")
    account_name: str = Field(alias="accountName")
    role_arn: str = Field(alias="roleArn")
    owner_email: str = Field(alias="ownerEmail")
    enable_cloud_trail: bool = Field(default=True, alias="enableCloudTrail")
    enable_config: bool = Field(default=True, alias="enableConfig")
    budget_amount_usd: float = Field(
        default=DEFAULT_BUDGET_AMOUNT_USD, alias="budgetAmountUSD"
    )
    budget_threshold_percent: int = Field(
        default=DEFAULT_BUDGET_THRESHOLD_PERCENT, alias="budgetThresholdPercent"
    )
    primary_region: str = Field(default=DEFAULT_PRIMARY_REGION, alias="primaryRegion")
    allowed_regions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_REGIONS), alias="allowedRegions"
    )


class ClaimCondition(_ResourceModel):
    type: str
    status: str
    reason: Optional[str] = None
    message: Optional[str] = None
    last_transition_time: Optional[str] = Field(
        default=None, alias="lastTransitionTime"
    )


class GuardrailClaimStatus(_ResourceModel):
    """Observed state reported by the composition."""

    guardrails_applied: Optional[bool] = Field(default=None, alias="guardrailsApplied")
    cloud_trail_status: Optional[str] = Field(default=None, alias="cloudTrailStatus")
    config_status: Optional[str] = Field(default=None, alias="configStatus")
    budget_status: Optional[str] = Field(default=None, alias="budgetStatus")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")
    conditions: List[ClaimCondition] = Field(default_factory=list)

    def condition(self, condition_type: str) -> Optional[ClaimCondition]:
        for cond in self.conditions:
            if cond.type == condition_type:
                return cond
        return None


class ObjectMeta(_ResourceModel):
    name: str
    namespace: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class GuardrailClaim(_ResourceModel):
    """A GuardrailedAccountClaim as stored in the cluster."""

    api_version: str = Field(default=f"{GROUP}/{VERSION}", alias="apiVersion")
    kind: str = KIND
    metadata: ObjectMeta
    spec: GuardrailClaimSpec
    status: Optional[GuardrailClaimStatus] = None

    @property
    def name(self) -> str:
        return self.metadata.name

    def to_resource(self) -> dict:
        """Serialize to the camelCase body the API server expects."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class GuardrailStatus(BaseModel):
    """Simplified readiness signal derived from a claim."""

    is_ready: bool
    status: GuardrailPhase
    error_message: Optional[str] = None


def claim_name_for(account_id: str) -> str:
    return f"guardrailed-aws-{account_id}"


def build_claim(spec: GuardrailClaimSpec, namespace: Optional[str] = None) -> GuardrailClaim:
    """Assemble the claim resource for ``spec`` with its standard labels."""
    return GuardrailClaim(
        metadata=ObjectMeta(
            name=claim_name_for(spec.account_id),
            namespace=namespace,
            labels={
                MANAGED_BY_LABEL: MANAGED_BY,
                ACCOUNT_ID_LABEL: spec.account_id,
            },
        ),
        spec=spec,
    )
