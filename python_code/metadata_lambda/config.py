"""
Configuration loading for the Image Metadata Ingest service.

All settings come from environment variables and are validated once, at cold
start, so a misconfigured function fails before it serves any request.
"""

import os
from dataclasses import dataclass
from typing import Optional

RESOLUTION_FAILURE_POLICIES = ("reject", "fallback")


def get_env_var(name: str, default: Optional[str] = None) -> str:
    """
    Gets an environment variable or raises a ValueError for fast-failure.

    Args:
        name: The name of the environment variable.
        default: An optional default value. If not provided, the variable is required.

    Returns:
        The value of the environment variable.

    Raises:
        ValueError: If the required environment variable is not set.
    """
    value = os.environ.get(name, default)
    if value is None:
        raise ValueError(f"FATAL: Environment variable '{name}' is not set.")
    return value


@dataclass(frozen=True)
class Settings:
    """
    Immutable runtime configuration.

    Attributes:
        image_bucket: Bucket holding the uploaded images.
        metadata_table: DynamoDB table receiving the merged records.
        key_prefix: Prefix under which each request's objects are written.
        uri_scheme: Scheme used when building the fully-qualified image key.
        resolution_failure_policy: "reject" surfaces S3 lookup failures to the
                                   caller; "fallback" stores the empty-key
                                   sentinel instead.
        aws_region: Region for both clients, or None to let boto3 resolve it.
        endpoint_url: Optional endpoint override for S3-compatible stores.
        environment: Deployment environment, used as a metrics dimension.
    """

    image_bucket: str = "team-3-project-3"
    metadata_table: str = "project-3-testing"
    key_prefix: str = "images/"
    uri_scheme: str = "s3"
    resolution_failure_policy: str = "reject"
    aws_region: Optional[str] = None
    endpoint_url: Optional[str] = None
    environment: str = "dev"


def load_settings() -> Settings:
    """
    Reads and validates Settings from the environment.

    Raises:
        ValueError: If a value is empty or the failure policy is unknown.
    """
    defaults = Settings()
    policy = get_env_var(
        "RESOLUTION_FAILURE_POLICY", defaults.resolution_failure_policy
    ).lower()
    if policy not in RESOLUTION_FAILURE_POLICIES:
        raise ValueError(
            f"FATAL: RESOLUTION_FAILURE_POLICY must be one of "
            f"{RESOLUTION_FAILURE_POLICIES}, got '{policy}'."
        )

    settings = Settings(
        image_bucket=get_env_var("IMAGE_BUCKET", defaults.image_bucket),
        metadata_table=get_env_var("METADATA_TABLE", defaults.metadata_table),
        key_prefix=get_env_var("IMAGE_KEY_PREFIX", defaults.key_prefix),
        uri_scheme=get_env_var("OBJECT_URI_SCHEME", defaults.uri_scheme),
        resolution_failure_policy=policy,
        aws_region=os.environ.get("AWS_REGION") or None,
        endpoint_url=os.environ.get("AWS_ENDPOINT_URL") or None,
        environment=get_env_var("ENVIRONMENT", defaults.environment),
    )

    for name in ("image_bucket", "metadata_table", "uri_scheme"):
        if not getattr(settings, name):
            raise ValueError(f"FATAL: Setting '{name}' must not be empty.")

    return settings
