"""
CLI for the DLP Remediation Service.

Provides commands for:
- Running the API server
- Dry-running triage on a finding file
- Quarantining an object by hand
- Producing signed test callbacks
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from dlp_remediator import __version__

app = typer.Typer(
    name="dlp-remediator",
    help="DLP Remediation Service CLI",
    add_completion=False,
)
console = Console()


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold blue]DLP Remediation Service[/] v{__version__}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
    workers: int = typer.Option(1, help="Number of workers"),
) -> None:
    """Start the API server."""
    import uvicorn

    console.print(f"[bold green]Starting server on {host}:{port}[/]")
    uvicorn.run(
        "dlp_remediator.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
    )


@app.command()
def triage(
    finding_file: Path = typer.Argument(..., exists=True, readable=True, help="Finding or EventBridge event JSON"),
    dispatch: bool = typer.Option(False, help="Act on the decision (invoke remediation / post to Slack)"),
) -> None:
    """Show how a finding would be routed."""
    from dlp_remediator.config import get_settings
    from dlp_remediator.logging_config import setup_logging
    from dlp_remediator.service import build_services
    from dlp_remediator.triage.dispatcher import finding_from_event

    settings = get_settings()
    setup_logging(settings)

    event = json.loads(finding_file.read_text())
    finding = finding_from_event(event)
    services = build_services(settings)

    if dispatch:
        decision = asyncio.run(services.run(services.dispatcher.dispatch(finding)))
    else:
        decision = services.engine.decide(finding)

    table = Table(title="Triage Decision")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Finding", finding.id)
    table.add_row("Category", finding.category)
    table.add_row("Type", str(finding.type))
    table.add_row("Severity", f"{finding.severity.description} ({finding.severity.score})")
    table.add_row("Object", f"S3://{finding.display_path}")
    table.add_row("Threshold", settings.remediation.min_severity_level.value)
    table.add_row("Decision", decision.value)
    table.add_row("Dispatched", "yes" if dispatch else "no (dry run)")
    console.print(table)


@app.command()
def quarantine(
    bucket: str = typer.Argument(..., help="Bucket holding the exposed object"),
    key: str = typer.Argument(..., help="Key of the exposed object"),
) -> None:
    """Quarantine a single object without going through triage."""
    from dlp_remediator.clients.object_store import S3ObjectStore
    from dlp_remediator.config import get_settings
    from dlp_remediator.exceptions import PartialRemediationError, TransientDependencyError
    from dlp_remediator.logging_config import setup_logging
    from dlp_remediator.remediation.executor import RemediationExecutor, raise_for_outcome

    settings = get_settings()
    setup_logging(settings)

    if not settings.remediation.quarantine_bucket:
        console.print("[red]❌ QUARANTINE_BUCKET is not configured[/]")
        raise typer.Exit(code=2)

    executor = RemediationExecutor(
        store=S3ObjectStore(aws=settings.aws),
        quarantine_bucket=settings.remediation.quarantine_bucket,
    )
    outcome = asyncio.run(executor.quarantine(bucket, key))

    try:
        raise_for_outcome(outcome)
    except PartialRemediationError as e:
        console.print(f"[yellow]⚠️ Partial failure: {e}[/]")
        raise typer.Exit(code=1)
    except TransientDependencyError as e:
        console.print(f"[red]❌ Quarantine failed: {e}[/]")
        raise typer.Exit(code=1)

    console.print(f"[green]✅ Quarantined to {outcome.quarantine_location}[/]")


@app.command()
def sign(
    body: str = typer.Argument(..., help="Raw request body to sign"),
    timestamp: Optional[int] = typer.Option(None, help="Request timestamp (defaults to now)"),
) -> None:
    """Print signature headers for a callback body (for local testing)."""
    from dlp_remediator.config import get_settings
    from dlp_remediator.hitl.signature import SIGNATURE_HEADER, TIMESTAMP_HEADER, SignatureVerifier

    settings = get_settings()
    secret = settings.slack.signing_secret.get_secret_value()
    if not secret:
        console.print("[red]❌ SLACK_SIGNING_SECRET is not configured[/]")
        raise typer.Exit(code=2)

    ts = timestamp if timestamp is not None else int(time.time())
    verifier = SignatureVerifier(secret)
    console.print(f"{TIMESTAMP_HEADER}: {ts}")
    console.print(f"{SIGNATURE_HEADER}: {verifier.sign(ts, body)}")


@app.command()
def show_config() -> None:
    """Show effective configuration (secrets masked)."""
    from dlp_remediator.config import get_settings

    settings = get_settings()
    remediation = settings.remediation

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Environment", settings.app_env)
    table.add_row("Minimum severity", remediation.min_severity_level.value)
    table.add_row("Quarantine bucket", remediation.quarantine_bucket or "[red]unset[/]")
    table.add_row("Transport", remediation.remediation_transport)
    table.add_row("Remediator function", remediation.remediator_function_name)
    table.add_row("Slack channel", settings.slack.channel)
    table.add_row("Slack webhook", "configured" if settings.slack.webhook_url else "[yellow]stub mode[/]")
    table.add_row(
        "Signing secret",
        "configured" if settings.slack.signing_secret.get_secret_value() else "[red]unset[/]",
    )
    console.print(table)

    policy = Table(title="Remediation Policy")
    policy.add_column("Finding type", style="cyan")
    policy.add_column("Action", style="green")
    for finding_type, action in sorted(remediation.auto_remediate_config.items()):
        policy.add_row(finding_type, action.value)
    policy.add_row("[dim]<any other type>[/]", "MANUAL")
    console.print(policy)


if __name__ == "__main__":
    app()
