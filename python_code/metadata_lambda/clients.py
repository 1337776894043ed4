"""
A factory module for creating and providing boto3 clients.

This module is the core of the Dependency Injection (DI) pattern for the
application. It allows the main handler to receive either real AWS clients
or mocked clients during testing, depending on whether `moto` is active.
This makes the application's business logic fully testable without making
real AWS calls.
"""

import logging
import os
from typing import Tuple

import boto3
import botocore.config

from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource
from mypy_boto3_s3 import S3Client

from .config import Settings

logger = logging.getLogger(__name__)

# Retries are left to the SDK's standard mode; this service adds none of its own.
BOTO_CONFIG = botocore.config.Config(retries={"mode": "standard"})


def get_boto_clients(settings: Settings) -> Tuple[S3Client, DynamoDBServiceResource]:
    """
    Returns the S3 client and DynamoDB resource used by the service.

    Both share the configured region and the optional endpoint override. If
    no region is configured, boto3 falls back to its usual resolution chain.

    Args:
        settings: The loaded runtime Settings.

    Returns:
        A tuple of (s3_client, dynamodb_resource).
    """
    if not settings.aws_region:
        logger.warning("AWS_REGION not set, boto3 will attempt to resolve it.")

    # In a test run with the moto fixture, this log confirms DI is active.
    if os.environ.get("USE_MOTO"):
        logger.info("MOTO ENABLED: Returning mocked AWS clients.")

    s3_client: S3Client = boto3.client(
        "s3",
        region_name=settings.aws_region,
        endpoint_url=settings.endpoint_url,
        config=BOTO_CONFIG,
    )
    dynamodb_resource: DynamoDBServiceResource = boto3.resource(
        "dynamodb",
        region_name=settings.aws_region,
        endpoint_url=settings.endpoint_url,
        config=BOTO_CONFIG,
    )

    return s3_client, dynamodb_resource
