"""
Chat message rendering for approval requests and remediation reports.

Pure functions of their inputs: no I/O and no wall-clock reads. The only
time rendered is the finding's own ``updated_at``.
"""

from dlp_remediator.models import (
    ApprovalContext,
    ChatMessage,
    Finding,
    RemediationOutcome,
    RemediationStatus,
)

CONSOLE_URL = "https://console.aws.amazon.com/macie"
REMEDIATE_ACTION_ID = "remediate_finding"


def console_link(finding: Finding) -> str:
    """Deep link to the finding in the detection console."""
    return f"{CONSOLE_URL}/home?region={finding.region}#/findings?itemId={finding.id}"


def format_finding_time(finding: Finding) -> str:
    """Render the finding time as a Slack date token with an ISO fallback."""
    if finding.updated_at is None:
        return "unknown"
    iso = finding.updated_at.isoformat()
    epoch = int(finding.updated_at.timestamp())
    return f"<!date^{epoch}^{{date}} at {{time}}|{iso}>"


class NotificationComposer:
    """
    Builds Slack Block Kit messages.

    Approval requests carry the finding id as the value of their only
    button; it is the single piece of state that survives until the
    callback arrives.
    """

    def __init__(self, channel: str, quarantine_bucket: str, username: str = "MacieBot") -> None:
        self._channel = channel
        self._quarantine_bucket = quarantine_bucket
        self._username = username

    def _field_grid(self, finding: Finding) -> dict:
        return {
            "type": "section",
            "block_id": "finding_fields",
            "fields": [
                {"type": "mrkdwn", "text": f"*Severity:*  `{finding.severity.description}`"},
                {"type": "mrkdwn", "text": f"*Region:* {finding.region}"},
                {"type": "mrkdwn", "text": f"*Account Number:* {finding.account_id}"},
                {"type": "mrkdwn", "text": f"*Finding Category:* {finding.category}"},
                {"type": "mrkdwn", "text": f"*Finding Type:* {finding.type}"},
                {"type": "mrkdwn", "text": f"*Finding Time:* {format_finding_time(finding)}"},
            ],
        }

    def compose_approval_request(self, finding: Finding) -> ChatMessage:
        """
        Render a request for manual authorisation of remediation.

        Args:
            finding: The finding awaiting a decision

        Returns:
            ChatMessage with a "Remediate" button whose value is the finding id
        """
        warning = (
            '*WARNING*: Clicking "Remediate" will move the offending object into '
            f"quarantine bucket: *S3://{self._quarantine_bucket}* with restricted permissions"
        )

        blocks = [
            {
                "type": "section",
                "block_id": "finding_context",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*Finding in {finding.region} for Acct: {finding.account_id}*",
                },
            },
            {
                "type": "section",
                "block_id": "finding_object",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"*Offending Object:* `S3://{finding.display_path}` \n"
                        f"*Finding:* {finding.description}\n"
                        f" <{console_link(finding)}|View Macie Finding in Console>"
                    ),
                },
            },
            self._field_grid(finding),
            {
                "type": "actions",
                "block_id": "remediation_actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "Remediate", "emoji": True},
                        "style": "danger",
                        "action_id": REMEDIATE_ACTION_ID,
                        "value": finding.id,
                    },
                ],
            },
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": warning}],
            },
            {"type": "divider"},
        ]

        return ChatMessage(
            channel=self._channel,
            text=finding.title or f"Sensitive data finding {finding.id}",
            blocks=blocks,
            username=self._username,
        )

    def _headline(self, finding: Finding, outcome: RemediationOutcome, approval: ApprovalContext | None) -> str:
        where = f"in {finding.region} for Acct: {finding.account_id}"
        if outcome.status == RemediationStatus.SUCCESS:
            verb = "REMEDIATED" if approval else "AUTO-REMEDIATED"
            return f"*Finding {verb} {where}* :white_check_mark:"
        if outcome.status == RemediationStatus.PARTIAL_FAILURE:
            return f"*Finding PARTIALLY REMEDIATED {where}* :warning: operator action required"
        return f"*Finding remediation FAILED {where}* :x: operator action required"

    def _outcome_detail(self, finding: Finding, outcome: RemediationOutcome) -> str:
        if outcome.status == RemediationStatus.SUCCESS:
            return (
                f"Offending Object: `S3://{finding.display_path}` has been isolated to "
                f"quarantine bucket: `S3://{outcome.quarantine_bucket}`"
            )
        if outcome.status == RemediationStatus.PARTIAL_FAILURE:
            return (
                f"Offending Object: `S3://{finding.display_path}` was copied to "
                f"`{outcome.quarantine_location}` but could NOT be deleted from its original "
                f"location and is still exposed.\nError: {outcome.error}"
            )
        return (
            f"Offending Object: `S3://{finding.display_path}` could not be copied to "
            f"quarantine bucket `S3://{outcome.quarantine_bucket}`; it was left in place.\n"
            f"Error: {outcome.error}"
        )

    def compose_outcome_report(
        self,
        finding: Finding,
        outcome: RemediationOutcome,
        approval: ApprovalContext | None = None,
    ) -> ChatMessage:
        """
        Render the result of a remediation run.

        Args:
            finding: The remediated finding
            outcome: Result of the quarantine
            approval: Approval context when a human authorised the run

        Returns:
            ChatMessage without interactive controls
        """
        headline = self._headline(finding, outcome, approval)

        detail = self._outcome_detail(finding, outcome)
        if approval is not None:
            detail = f"Remediation authorised by: @{approval.username} \n{detail}"
        detail = f"{detail} \n <{console_link(finding)}|View Macie Finding in Console>"

        grid = self._field_grid(finding)
        grid["fields"][4] = {"type": "mrkdwn", "text": f"*Finding Type:* {finding.title or finding.type}"}

        blocks = [
            {
                "type": "section",
                "block_id": "outcome_headline",
                "text": {"type": "mrkdwn", "text": headline},
            },
            {
                "type": "section",
                "block_id": "outcome_detail",
                "text": {"type": "mrkdwn", "text": detail},
            },
            grid,
            {"type": "divider"},
        ]

        return ChatMessage(
            channel=self._channel,
            text=headline,
            blocks=blocks,
            username=self._username,
        )
