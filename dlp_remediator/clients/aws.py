"""
boto3 client construction shared by the AWS adapters.
"""

from typing import Any

import boto3

from dlp_remediator.config import AWSSettings


def create_client(service: str, aws: AWSSettings | None = None) -> Any:
    """Create a boto3 client for ``service`` honouring region/endpoint overrides."""
    kwargs: dict[str, Any] = {}
    if aws is not None:
        if aws.region:
            kwargs["region_name"] = aws.region
        if aws.endpoint_url:
            kwargs["endpoint_url"] = aws.endpoint_url
    return boto3.client(service, **kwargs)
