"""
Findings source adapter.

Used by the approval stage to re-fetch a finding by id instead of trusting
anything carried in a chat callback.
"""

import asyncio
from typing import Any, Protocol

import structlog
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError

from dlp_remediator.clients.aws import create_client
from dlp_remediator.config import AWSSettings
from dlp_remediator.exceptions import TransientDependencyError, ValidationError
from dlp_remediator.models import Finding

logger = structlog.get_logger(__name__)


class FindingsSource(Protocol):
    """Read access to the detection source."""

    async def get_finding(self, finding_id: str) -> Finding | None: ...


class MacieFindingsSource:
    """Amazon Macie implementation of FindingsSource."""

    def __init__(self, client: Any | None = None, aws: AWSSettings | None = None) -> None:
        """
        Args:
            client: boto3 macie2 client (created on first use if omitted)
            aws: Region/endpoint overrides for the created client
        """
        self._client = client
        self._aws = aws
        self._logger = logger.bind(component="macie_findings_source")

    @property
    def _macie(self) -> Any:
        if self._client is None:
            self._client = create_client("macie2", self._aws)
        return self._client

    async def get_finding(self, finding_id: str) -> Finding | None:
        """
        Fetch a single finding.

        Returns:
            The finding, or None if Macie does not know the id

        Raises:
            TransientDependencyError: Macie call failed
            ValidationError: Macie returned a record we cannot parse
        """
        try:
            response = await asyncio.to_thread(
                self._macie.get_findings, findingIds=[finding_id]
            )
        except (BotoCoreError, ClientError) as e:
            self._logger.error("macie_get_findings_failed", finding_id=finding_id, error=str(e))
            raise TransientDependencyError(
                f"Unable to retrieve finding {finding_id}: {e}", dependency="macie2"
            ) from e

        findings = response.get("findings") or []
        if not findings:
            return None

        try:
            return Finding.model_validate(findings[0])
        except PydanticValidationError as e:
            raise ValidationError(f"Finding {finding_id} is malformed: {e}") from e
