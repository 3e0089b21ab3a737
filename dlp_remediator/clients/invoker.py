"""
One-way dispatch to the remediation stage.

Senders hand over a RemediationRequest and move on: they never wait for
remediation to finish and must not assume it succeeded. Delivery is
at-least-once at best.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from dlp_remediator.clients.aws import create_client
from dlp_remediator.config import AWSSettings
from dlp_remediator.exceptions import TransientDependencyError
from dlp_remediator.models import RemediationRequest

logger = structlog.get_logger(__name__)


class StageInvoker(Protocol):
    """Fire-and-forget transport to the remediation stage."""

    async def invoke(self, request: RemediationRequest) -> None: ...


class LambdaStageInvoker:
    """Invokes the remediator Lambda function asynchronously (``InvocationType=Event``)."""

    def __init__(
        self,
        function_name: str,
        client: Any | None = None,
        aws: AWSSettings | None = None,
    ) -> None:
        """
        Args:
            function_name: Name or ARN of the remediation function
            client: boto3 Lambda client (created on first use if omitted)
            aws: Region/endpoint overrides for the created client
        """
        self._function_name = function_name
        self._client = client
        self._aws = aws
        self._logger = logger.bind(component="lambda_invoker", function=function_name)

    @property
    def _lambda(self) -> Any:
        if self._client is None:
            self._client = create_client("lambda", self._aws)
        return self._client

    async def invoke(self, request: RemediationRequest) -> None:
        payload = json.dumps(request.to_payload())
        try:
            response = await asyncio.to_thread(
                self._lambda.invoke,
                FunctionName=self._function_name,
                InvocationType="Event",
                Payload=payload,
            )
        except (BotoCoreError, ClientError) as e:
            self._logger.error("remediation_invoke_failed", finding_id=request.finding.id, error=str(e))
            raise TransientDependencyError(
                f"Unable to invoke {self._function_name}: {e}", dependency="lambda"
            ) from e

        self._logger.info(
            "remediation_invoked",
            finding_id=request.finding.id,
            manual=request.is_manual,
            status_code=response.get("StatusCode"),
        )


class BackgroundStageInvoker:
    """
    Runs the remediation stage as a detached asyncio task in this process.

    The request is serialised and re-parsed so the stage only sees what a
    real transport would deliver.
    """

    def __init__(self, handler: Callable[[RemediationRequest], Awaitable[Any]]) -> None:
        self._handler = handler
        self._tasks: set[asyncio.Task] = set()
        self._logger = logger.bind(component="background_invoker")

    async def invoke(self, request: RemediationRequest) -> None:
        delivered = RemediationRequest.model_validate(request.to_payload())
        task = asyncio.create_task(self._handler(delivered))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        self._logger.info(
            "remediation_scheduled",
            finding_id=request.finding.id,
            manual=request.is_manual,
        )

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            # The loop closed before remediation finished; nothing was quarantined or reported
            self._logger.error("background_remediation_cancelled", task=task.get_name())
            return
        if (exc := task.exception()) is not None:
            self._logger.error("background_remediation_failed", error=str(exc), exc_info=exc)

    async def drain(self) -> None:
        """Wait for every scheduled remediation, including ones scheduled while waiting."""
        while pending := [t for t in self._tasks if not t.done()]:
            await asyncio.gather(*pending, return_exceptions=True)
