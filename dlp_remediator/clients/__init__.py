"""
Adapters for external collaborators: object storage, the findings source
and the transport to the remediation stage.
"""

from dlp_remediator.clients.findings_source import FindingsSource, MacieFindingsSource
from dlp_remediator.clients.invoker import (
    BackgroundStageInvoker,
    LambdaStageInvoker,
    StageInvoker,
)
from dlp_remediator.clients.object_store import ObjectStore, S3ObjectStore

__all__ = [
    "FindingsSource",
    "MacieFindingsSource",
    "StageInvoker",
    "LambdaStageInvoker",
    "BackgroundStageInvoker",
    "ObjectStore",
    "S3ObjectStore",
]
