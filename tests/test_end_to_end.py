"""
End-to-end flows through triage, approval and remediation.
"""

import time

import pytest

from conftest import (
    QUARANTINE_BUCKET,
    RESPONSE_URL,
    SIGNING_SECRET,
    WEBHOOK_URL,
    FakeFindingsSource,
    FakeObjectStore,
    RecordingInvoker,
    SlackRecorder,
    make_finding,
    signed_headers,
    slack_callback_body,
)
from dlp_remediator.clients.invoker import BackgroundStageInvoker
from dlp_remediator.config import RemediationSettings, Settings, SlackSettings
from dlp_remediator.models import Decision
from dlp_remediator.service import build_services


def make_settings(action: str, transport: str = "lambda") -> Settings:
    return Settings(
        APP_ENV="development",
        remediation=RemediationSettings(
            AUTO_REMEDIATE_CONFIG={"X": action},
            MIN_SEVERITY_LEVEL="LOW",
            QUARANTINE_BUCKET=QUARANTINE_BUCKET,
            REMEDIATION_TRANSPORT=transport,
        ),
        slack=SlackSettings(
            SLACK_WEBHOOK_URL=WEBHOOK_URL,
            SLACK_SIGNING_SECRET=SIGNING_SECRET,
        ),
    )


@pytest.fixture
def x_finding():
    return make_finding(score=5, finding_type="X")


class TestScenarios:
    """Auto path, approval request, approved callback and forged callback."""

    @pytest.mark.asyncio
    async def test_auto_policy_invokes_execution_without_chat(self, x_finding):
        slack = SlackRecorder()
        invoker = RecordingInvoker()
        services = build_services(
            make_settings("AUTO"),
            store=FakeObjectStore(),
            findings=FakeFindingsSource(x_finding),
            invoker=invoker,
            http_client=slack.client(),
        )

        decision = await services.dispatcher.handle_event({"detail": x_finding.to_wire()})

        assert decision == Decision.AUTO
        assert len(invoker.requests) == 1
        assert invoker.requests[0].finding.id == x_finding.id
        assert invoker.requests[0].approval is None
        assert slack.posts == []

    @pytest.mark.asyncio
    async def test_manual_policy_requests_approval(self, x_finding):
        slack = SlackRecorder()
        invoker = RecordingInvoker()
        services = build_services(
            make_settings("MANUAL"),
            store=FakeObjectStore(),
            findings=FakeFindingsSource(x_finding),
            invoker=invoker,
            http_client=slack.client(),
        )

        decision = await services.dispatcher.handle_event({"detail": x_finding.to_wire()})

        assert decision == Decision.MANUAL
        assert invoker.requests == []
        assert len(slack.posts) == 1
        url, payload = slack.posts[0]
        assert url == WEBHOOK_URL
        values = [
            element["value"]
            for block in payload["blocks"]
            if block["type"] == "actions"
            for element in block["elements"]
        ]
        assert values == [x_finding.id]

    @pytest.mark.asyncio
    async def test_approved_callback_invokes_execution_with_user(self, x_finding):
        invoker = RecordingInvoker()
        services = build_services(
            make_settings("MANUAL"),
            store=FakeObjectStore(),
            findings=FakeFindingsSource(x_finding),
            invoker=invoker,
            http_client=SlackRecorder().client(),
        )
        body = slack_callback_body(x_finding.id, username="jane.doe")
        headers = signed_headers(body, timestamp=int(time.time()) - 10)

        response = await services.gateway.handle(headers, body)

        assert response.status_code == 200
        assert response.body == {"text": "request acknowledged"}
        assert len(invoker.requests) == 1
        assert invoker.requests[0].finding.id == x_finding.id
        assert invoker.requests[0].approval.username == "jane.doe"

    @pytest.mark.asyncio
    async def test_forged_callback_is_rejected(self, x_finding):
        invoker = RecordingInvoker()
        services = build_services(
            make_settings("MANUAL"),
            store=FakeObjectStore(),
            findings=FakeFindingsSource(x_finding),
            invoker=invoker,
            http_client=SlackRecorder().client(),
        )
        body = slack_callback_body(x_finding.id)
        headers = signed_headers(slack_callback_body("some-other-finding"))

        response = await services.gateway.handle(headers, body)

        assert response.status_code == 401
        assert invoker.requests == []


class TestInProcessPipeline:
    """Full loop with the background transport."""

    @pytest.mark.asyncio
    async def test_approval_to_quarantine_and_report(self, x_finding):
        slack = SlackRecorder()
        store = FakeObjectStore({(x_finding.bucket, x_finding.object_key): b"secret"})
        services = build_services(
            make_settings("MANUAL", transport="background"),
            store=store,
            findings=FakeFindingsSource(x_finding),
            http_client=slack.client(),
        )
        assert isinstance(services.invoker, BackgroundStageInvoker)

        await services.dispatcher.handle_event({"detail": x_finding.to_wire()})
        body = slack_callback_body(x_finding.id, username="jane.doe")
        response = await services.gateway.handle(signed_headers(body), body)
        await services.invoker.drain()

        assert response.status_code == 200
        quarantine_key = f"{x_finding.bucket}/{x_finding.object_key}"
        assert store.objects == {(QUARANTINE_BUCKET, quarantine_key): b"secret"}

        assert [url for url, _ in slack.posts] == [WEBHOOK_URL, RESPONSE_URL]
        report = slack.posts[1][1]
        assert "REMEDIATED" in report["text"]
        assert "@jane.doe" in report["blocks"][1]["text"]["text"]
        assert all(block["type"] != "actions" for block in report["blocks"])

    @pytest.mark.asyncio
    async def test_auto_pipeline_reports_to_webhook(self, x_finding):
        slack = SlackRecorder()
        store = FakeObjectStore({(x_finding.bucket, x_finding.object_key): b"secret"})
        services = build_services(
            make_settings("AUTO", transport="background"),
            store=store,
            findings=FakeFindingsSource(x_finding),
            http_client=slack.client(),
        )

        await services.dispatcher.handle_event({"detail": x_finding.to_wire()})
        await services.invoker.drain()

        assert len(slack.posts) == 1
        url, report = slack.posts[0]
        assert url == WEBHOOK_URL
        assert "AUTO-REMEDIATED" in report["text"]

    @pytest.mark.asyncio
    async def test_partial_failure_reaches_operator(self, x_finding):
        slack = SlackRecorder()
        store = FakeObjectStore({(x_finding.bucket, x_finding.object_key): b"secret"})
        store.fail_delete = True
        services = build_services(
            make_settings("AUTO", transport="background"),
            store=store,
            findings=FakeFindingsSource(x_finding),
            http_client=slack.client(),
        )

        await services.dispatcher.handle_event({"detail": x_finding.to_wire()})
        await services.invoker.drain()

        report = slack.posts[0][1]
        assert "PARTIALLY REMEDIATED" in report["text"]
        assert (x_finding.bucket, x_finding.object_key) in store.objects
