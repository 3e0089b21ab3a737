"""
Shared fixtures for the remediation workflow tests.
"""

import json
import time
from typing import Any
from urllib.parse import urlencode

import httpx
import pytest

from dlp_remediator.config import RemediationSettings, Settings, SlackSettings
from dlp_remediator.exceptions import TransientDependencyError
from dlp_remediator.hitl.signature import SIGNATURE_HEADER, TIMESTAMP_HEADER, SignatureVerifier
from dlp_remediator.logging_config import clear_context
from dlp_remediator.models import Finding, RemediationRequest

SIGNING_SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
QUARANTINE_BUCKET = "macie-quarantine"
WEBHOOK_URL = "https://hooks.slack.test/services/T000/B000/XXXX"
RESPONSE_URL = "https://hooks.slack.test/actions/T000/1234/abcd"


def make_finding_dict(
    finding_id: str = "f-0001",
    category: str = "CLASSIFICATION",
    score: int | None = 5,
    finding_type: str = "SensitiveData:S3Object/Personal",
    bucket: str = "exposed-bucket",
    key: str = "exports/customers.csv",
) -> dict[str, Any]:
    """Finding in the detection source's wire format."""
    severity: dict[str, Any] = {"description": "High"}
    if score is not None:
        severity["score"] = score
    return {
        "id": finding_id,
        "category": category,
        "severity": severity,
        "type": finding_type,
        "title": "The S3 object contains personal information.",
        "description": "The object contains personal information such as full names.",
        "accountId": "123456789012",
        "region": "eu-west-1",
        "createdAt": "2024-03-01T10:15:00Z",
        "updatedAt": "2024-03-01T10:20:00Z",
        "resourcesAffected": {
            "s3Bucket": {"name": bucket, "arn": f"arn:aws:s3:::{bucket}"},
            "s3Object": {"bucketName": bucket, "key": key, "path": f"{bucket}/{key}"},
        },
    }


def make_finding(**kwargs: Any) -> Finding:
    return Finding.model_validate(make_finding_dict(**kwargs))


def slack_callback_body(finding_id: str, username: str = "jane.doe") -> str:
    """URL-encoded interactive callback body as Slack sends it."""
    payload = {
        "type": "block_actions",
        "user": {"id": "U123ABC", "username": username, "name": username},
        "response_url": RESPONSE_URL,
        "actions": [{"action_id": "remediate_finding", "value": finding_id, "type": "button"}],
    }
    return urlencode({"payload": json.dumps(payload)})


def signed_headers(body: str, timestamp: int | None = None, secret: str = SIGNING_SECRET) -> dict[str, str]:
    ts = timestamp if timestamp is not None else int(time.time())
    return {
        TIMESTAMP_HEADER: str(ts),
        SIGNATURE_HEADER: SignatureVerifier(secret).sign(ts, body),
    }


class FakeObjectStore:
    """In-memory object store with switchable failures."""

    def __init__(self, objects: dict[tuple[str, str], bytes] | None = None) -> None:
        self.objects = dict(objects or {})
        self.calls: list[tuple] = []
        self.fail_copy = False
        self.fail_delete = False

    async def copy_object(self, source_bucket: str, source_key: str, dest_bucket: str, dest_key: str) -> None:
        self.calls.append(("copy", source_bucket, source_key, dest_bucket, dest_key))
        if self.fail_copy:
            raise TransientDependencyError("AccessDenied on CopyObject", dependency="s3")
        self.objects[(dest_bucket, dest_key)] = self.objects.get((source_bucket, source_key), b"")

    async def delete_object(self, bucket: str, key: str) -> None:
        self.calls.append(("delete", bucket, key))
        if self.fail_delete:
            raise TransientDependencyError("AccessDenied on DeleteObject", dependency="s3")
        self.objects.pop((bucket, key), None)


class FakeFindingsSource:
    def __init__(self, *findings: Finding) -> None:
        self.findings = {f.id: f for f in findings}
        self.requested: list[str] = []

    async def get_finding(self, finding_id: str) -> Finding | None:
        self.requested.append(finding_id)
        return self.findings.get(finding_id)


class RecordingInvoker:
    """Stage invoker that records what would have been sent over the transport."""

    def __init__(self) -> None:
        self.requests: list[RemediationRequest] = []

    async def invoke(self, request: RemediationRequest) -> None:
        self.requests.append(RemediationRequest.model_validate(request.to_payload()))


class SlackRecorder:
    """httpx mock transport capturing posted chat messages."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.posts: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.posts.append((str(request.url), json.loads(request.content)))
        return httpx.Response(self.status_code, text="ok")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture(autouse=True)
def pipeline_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def finding() -> Finding:
    return make_finding()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        APP_ENV="development",
        remediation=RemediationSettings(
            AUTO_REMEDIATE_CONFIG={"X": "AUTO"},
            MIN_SEVERITY_LEVEL="LOW",
            QUARANTINE_BUCKET=QUARANTINE_BUCKET,
        ),
        slack=SlackSettings(
            SLACK_WEBHOOK_URL=WEBHOOK_URL,
            SLACK_CHANNEL="#dlp-alerts",
            SLACK_SIGNING_SECRET=SIGNING_SECRET,
        ),
    )


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore({("exposed-bucket", "exports/customers.csv"): b"name,email\n"})


@pytest.fixture
def invoker() -> RecordingInvoker:
    return RecordingInvoker()


@pytest.fixture
def slack() -> SlackRecorder:
    return SlackRecorder()
