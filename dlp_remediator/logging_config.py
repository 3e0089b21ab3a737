"""
Structured logging configuration.

structlog is configured once per process:
- console output while developing, one JSON object per line elsewhere
- every event tagged with the stage, the finding and the request that
  triggered it
- Slack URLs and signing material masked before rendering
"""

import logging
import sys
from contextvars import ContextVar
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from dlp_remediator.config import Settings, get_settings

SERVICE_NAME = "dlp-remediator"

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
finding_id: ContextVar[str] = ContextVar("finding_id", default="")
stage_name: ContextVar[str] = ContextVar("stage_name", default="")

# Webhook and response URLs are bearer credentials
_MASKED_KEYS = frozenset({"signing_secret", "webhook_url", "response_url", "url"})


def add_pipeline_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag events with the current request, finding and stage."""
    for key, var in (("correlation_id", correlation_id), ("finding_id", finding_id), ("stage", stage_name)):
        if value := var.get():
            event_dict.setdefault(key, value)
    return event_dict


def mask_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in _MASKED_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def _renderer(settings: Settings) -> list[Processor]:
    if settings.is_development:
        return [
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        ]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        settings: Configuration (process settings if omitted)
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level)

    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["service"] = SERVICE_NAME
        event_dict["environment"] = settings.app_env
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_pipeline_context,
            add_service,
            mask_secrets,
            structlog.processors.StackInfoRenderer(),
            *_renderer(settings),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # boto and httpx log every request at INFO/DEBUG
    for noisy in ("httpx", "httpcore", "botocore", "boto3", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def set_correlation_id(cid: str | None = None) -> str:
    """
    Set the correlation ID for the current context.

    Args:
        cid: Correlation ID (a new UUID if not provided)

    Returns:
        The correlation ID in effect
    """
    cid = cid or str(uuid4())
    correlation_id.set(cid)
    return cid


def set_finding_id(fid: str) -> None:
    finding_id.set(fid)


def set_stage(name: str) -> None:
    stage_name.set(name)


def clear_context() -> None:
    """Reset the per-request context variables."""
    for var in (correlation_id, finding_id, stage_name):
        var.set("")
