"""
Data model for the remediation workflow.

Defines the finding record received from the detection source, the routing
enums, and the payloads exchanged between the triage, approval and
remediation stages. Nothing here is persisted; findings are re-fetched by
id whenever they need to be trusted.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

CLASSIFICATION = "CLASSIFICATION"


class SeverityThreshold(str, Enum):
    """Minimum severity level a finding must reach to be acted on."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RemediationAction(str, Enum):
    """Per finding-type remediation policy."""

    AUTO = "AUTO"  # Quarantine without human approval
    MANUAL = "MANUAL"  # Ask in chat first


class Decision(str, Enum):
    """Triage outcome for a single finding."""

    SKIP = "SKIP"
    AUTO = "AUTO"
    MANUAL = "MANUAL"


class RemediationStatus(str, Enum):
    """Result of a quarantine attempt."""

    SUCCESS = "SUCCESS"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"  # Copied to quarantine, original still in place
    FAILURE = "FAILURE"  # Copy failed, original untouched


class _WireModel(BaseModel):
    """Base for records that arrive in the detection source's camelCase format."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class Severity(_WireModel):
    score: int | None = None
    description: str = ""


class S3Bucket(_WireModel):
    name: str


class S3Object(_WireModel):
    bucket_name: str | None = None
    key: str
    path: str | None = None


class ResourcesAffected(_WireModel):
    # Policy findings describe a bucket only; classification findings add the object
    s3_bucket: S3Bucket | None = None
    s3_object: S3Object | None = None


class Finding(_WireModel):
    """
    A sensitive-data exposure finding.

    Read-only everywhere in this service. The approval stage never trusts a
    finding carried in a callback; it re-fetches it by ``id``.
    """

    id: str
    category: str
    severity: Severity = Field(default_factory=Severity)
    type: str | None = None
    title: str = ""
    description: str = ""
    account_id: str = ""
    region: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resources_affected: ResourcesAffected = Field(default_factory=ResourcesAffected)

    @property
    def is_classification(self) -> bool:
        return self.category == CLASSIFICATION

    @property
    def has_object(self) -> bool:
        """True when the finding locates a single S3 object."""
        return bool(self.bucket and self.object_key)

    @property
    def bucket(self) -> str:
        resources = self.resources_affected
        if resources.s3_bucket is not None:
            return resources.s3_bucket.name
        if resources.s3_object is not None and resources.s3_object.bucket_name:
            return resources.s3_object.bucket_name
        return ""

    @property
    def object_key(self) -> str:
        s3_object = self.resources_affected.s3_object
        return s3_object.key if s3_object is not None else ""

    @property
    def display_path(self) -> str:
        """Human-readable ``bucket/key`` path of the affected object."""
        s3_object = self.resources_affected.s3_object
        if s3_object is not None and s3_object.path:
            return s3_object.path
        return f"{self.bucket}/{self.object_key}"

    def to_wire(self) -> dict[str, Any]:
        """Serialize back to the detection source's format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ApprovalContext(BaseModel):
    """
    The part of a chat button-click callback that outlives the callback.

    Only the acting user and where to reply are kept; everything else in
    the callback is untrusted and dropped.
    """

    model_config = ConfigDict(frozen=True)

    username: str
    user_id: str | None = None
    response_url: str | None = None
    action_value: str

    @model_validator(mode="before")
    @classmethod
    def _from_raw_callback(cls, data: Any) -> Any:
        # Raw interactive payloads (legacy ``slackPayload``) carry ``actions``/``user``
        if isinstance(data, dict) and "actions" in data:
            user = data.get("user") or {}
            return {
                "username": user.get("username") or user.get("name") or "",
                "user_id": user.get("id"),
                "response_url": data.get("response_url"),
                "action_value": data["actions"][0]["value"],
            }
        return data

    @classmethod
    def from_slack_payload(cls, payload: dict[str, Any]) -> "ApprovalContext":
        """Build from the decoded ``payload`` JSON of an interactive callback."""
        return cls.model_validate(payload)


class RemediationRequest(BaseModel):
    """
    Payload sent to the remediation stage.

    ``approval`` is ``None`` for automatic remediation.
    """

    model_config = ConfigDict(populate_by_name=True)

    finding: Finding = Field(validation_alias=AliasChoices("finding", "macieFinding"))
    approval: ApprovalContext | None = Field(
        default=None, validation_alias=AliasChoices("approval", "slackPayload")
    )

    @property
    def is_manual(self) -> bool:
        return self.approval is not None

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the asynchronous invocation transport."""
        return {
            "finding": self.finding.to_wire(),
            "approval": self.approval.model_dump(mode="json") if self.approval else None,
        }


class RemediationOutcome(BaseModel):
    """
    Result of a quarantine attempt.

    Records both locations and each sub-step so an operator (or a later
    reconciliation sweep) can tell exactly which copies exist.
    """

    status: RemediationStatus
    source_bucket: str
    source_key: str
    quarantine_bucket: str
    quarantine_key: str
    copied: bool = False
    deleted: bool = False
    error: str | None = None
    completed_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def requires_attention(self) -> bool:
        return self.status != RemediationStatus.SUCCESS

    @property
    def quarantine_location(self) -> str:
        return f"S3://{self.quarantine_bucket}/{self.quarantine_key}"


class ChatMessage(BaseModel):
    """Outbound chat message (Slack Block Kit)."""

    channel: str
    text: str
    blocks: list[dict[str, Any]] = Field(default_factory=list)
    username: str = "MacieBot"
    mrkdwn: bool = True
    as_user: bool = False

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump()

    def action_values(self) -> list[str]:
        """Values carried by interactive controls in the message."""
        return [
            element["value"]
            for block in self.blocks
            if block.get("type") == "actions"
            for element in block.get("elements", [])
            if "value" in element
        ]
