"""
Component wiring.

Builds every component from a single Settings value. Collaborators can be
overridden, which is how tests and the local API swap in fakes.
"""

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from dlp_remediator.clients.findings_source import FindingsSource, MacieFindingsSource
from dlp_remediator.clients.invoker import (
    BackgroundStageInvoker,
    LambdaStageInvoker,
    StageInvoker,
)
from dlp_remediator.clients.object_store import ObjectStore, S3ObjectStore
from dlp_remediator.config import Settings
from dlp_remediator.hitl.approval_gateway import ApprovalGateway
from dlp_remediator.hitl.message_composer import NotificationComposer
from dlp_remediator.hitl.signature import SignatureVerifier
from dlp_remediator.hitl.slack_notifier import SlackNotifier
from dlp_remediator.remediation.executor import RemediationExecutor
from dlp_remediator.triage.decision_engine import DecisionEngine
from dlp_remediator.triage.dispatcher import Dispatcher

T = TypeVar("T")


@dataclass
class Services:
    """All stage components for one process."""

    settings: Settings
    engine: DecisionEngine
    composer: NotificationComposer
    notifier: SlackNotifier
    verifier: SignatureVerifier
    executor: RemediationExecutor
    invoker: StageInvoker
    dispatcher: Dispatcher
    gateway: ApprovalGateway

    async def run(self, work: Awaitable[T]) -> T:
        """
        Run one unit of stage work to completion.

        With the in-process transport, remediations scheduled by ``work``
        are awaited too, so they survive a short-lived event loop.
        """
        try:
            return await work
        finally:
            if isinstance(self.invoker, BackgroundStageInvoker):
                await self.invoker.drain()


def build_services(
    settings: Settings,
    *,
    store: ObjectStore | None = None,
    findings: FindingsSource | None = None,
    invoker: StageInvoker | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Services:
    """
    Construct the component graph.

    Args:
        settings: Process-wide configuration
        store: Object store override (defaults to S3)
        findings: Findings source override (defaults to Macie)
        invoker: Stage invoker override (defaults per REMEDIATION_TRANSPORT)
        http_client: Shared HTTP client for chat delivery

    Returns:
        Services
    """
    remediation = settings.remediation

    engine = DecisionEngine(
        policy=remediation.auto_remediate_config,
        threshold=remediation.min_severity_level,
    )
    composer = NotificationComposer(
        channel=settings.slack.channel,
        quarantine_bucket=remediation.quarantine_bucket,
        username=settings.slack.username,
    )
    notifier = SlackNotifier(
        webhook_url=settings.slack.webhook_url,
        timeout=settings.slack.timeout,
        client=http_client,
    )
    verifier = SignatureVerifier(
        signing_secret=settings.slack.signing_secret.get_secret_value(),
        tolerance_seconds=remediation.signature_tolerance_seconds,
    )

    executor = RemediationExecutor(
        store=store or S3ObjectStore(aws=settings.aws),
        quarantine_bucket=remediation.quarantine_bucket,
        composer=composer,
        notifier=notifier,
    )

    if invoker is None:
        if remediation.remediation_transport == "background":
            invoker = BackgroundStageInvoker(executor.execute)
        else:
            invoker = LambdaStageInvoker(
                remediation.remediator_function_name,
                aws=settings.aws,
            )

    dispatcher = Dispatcher(engine, invoker, composer, notifier)
    gateway = ApprovalGateway(
        verifier=verifier,
        findings=findings or MacieFindingsSource(aws=settings.aws),
        invoker=invoker,
    )

    return Services(
        settings=settings,
        engine=engine,
        composer=composer,
        notifier=notifier,
        verifier=verifier,
        executor=executor,
        invoker=invoker,
        dispatcher=dispatcher,
        gateway=gateway,
    )
