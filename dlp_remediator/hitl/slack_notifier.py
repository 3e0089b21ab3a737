"""
Slack delivery for approval requests and remediation reports.

Posts pre-rendered messages to an incoming webhook, or to the
``response_url`` Slack hands us with an interactive callback.
"""

from dataclasses import dataclass

import httpx
import structlog

from dlp_remediator.models import ChatMessage

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    """Delivery status of a single chat message."""

    ok: bool
    status_code: int | None = None
    error: str | None = None


class SlackNotifier:
    """
    Sends messages to Slack.

    Never raises on delivery problems: HTTP errors and transport failures
    are logged and reported through the returned DeliveryResult.
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize Slack notifier.

        Args:
            webhook_url: Slack incoming webhook URL
            timeout: Per-request timeout in seconds
            client: Shared HTTP client (one is created per call if omitted)
        """
        self._webhook_url = webhook_url
        self._timeout = timeout
        self._client = client
        self._logger = logger.bind(component="slack_notifier")

    async def send(self, message: ChatMessage, url: str | None = None) -> DeliveryResult:
        """
        Deliver a message.

        Args:
            message: Rendered message
            url: Target URL; defaults to the configured webhook

        Returns:
            DeliveryResult
        """
        target = url or self._webhook_url
        if not target:
            # Stub mode - just log
            self._logger.info(
                "slack_message_stub",
                channel=message.channel,
                text=message.text,
            )
            return DeliveryResult(ok=True)

        try:
            if self._client is not None:
                response = await self._client.post(target, json=message.to_payload(), timeout=self._timeout)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(target, json=message.to_payload(), timeout=self._timeout)
        except httpx.HTTPError as e:
            self._logger.error("slack_send_failed", error=str(e))
            return DeliveryResult(ok=False, error=str(e))

        if response.status_code < 400:
            self._logger.info("slack_message_posted", channel=message.channel)
            return DeliveryResult(ok=True, status_code=response.status_code)

        if response.status_code < 500:
            self._logger.error(
                "slack_api_rejected_message",
                status_code=response.status_code,
                body=response.text[:200],
            )
        else:
            self._logger.error(
                "slack_server_error",
                status_code=response.status_code,
                body=response.text[:200],
            )
        return DeliveryResult(
            ok=False,
            status_code=response.status_code,
            error=f"HTTP {response.status_code}",
        )
