"""
Core business logic for the Image Metadata Ingest service.

These functions are designed to be "pure" and testable, containing no
direct AWS client construction and no global state. They receive all
dependencies, including the Powertools logger, from the main handler in
app.py, allowing them to be unit-tested in isolation.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, cast

from aws_lambda_powertools import Logger
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

# Import boto3 stubs for full type-safety in function signatures
from mypy_boto3_dynamodb.service_resource import Table
from mypy_boto3_s3 import S3Client
from mypy_boto3_s3.type_defs import ObjectTypeDef

from .errors import ResolutionError, WriteError
from .model import (
    InboundMetadata,
    IngestDependencies,
    ObjectReference,
    ResolvedRecord,
    Resolution,
    ResolutionStatus,
)

UNRESOLVED_KEY = ""

_TIMEOUT_ERRORS = (ConnectTimeoutError, ReadTimeoutError)
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def build_object_references(contents: Sequence[ObjectTypeDef]) -> List[ObjectReference]:
    """
    Converts the `Contents` of a ListObjectsV2 response into ObjectReferences.

    Raises:
        ResolutionError: If any entry has no usable `Key`.
    """
    references = []
    for position, entry in enumerate(contents):
        key = entry.get("Key")
        if not key:
            raise ResolutionError(
                f"No object key in S3 response entry at position {position}."
            )
        references.append(
            ObjectReference(
                key=key, position=position, last_modified=entry.get("LastModified")
            )
        )
    return references


def select_most_recent(references: Sequence[ObjectReference]) -> Optional[ObjectReference]:
    """
    Picks the most recently written object from a listing.

    The newest LastModified wins. Ties, and entries without a timestamp, are
    broken by listing position with the later entry winning, so a listing
    with no timestamps resolves to its last entry.
    """
    if not references:
        return None
    return max(references, key=lambda ref: (ref.last_modified or _EPOCH, ref.position))


def find_final_image_key(
    s3_client: S3Client,
    bucket: str,
    request_id: str,
    logger: Logger,
    key_prefix: str = "images/",
    scheme: str = "s3",
) -> Optional[str]:
    """
    Finds the fully-qualified key of the final image written for a request.

    Issues a single ListObjectsV2 call for `<key_prefix><request_id>/` and
    selects the most recent entry. A single entry without a `Key` anywhere
    in the listing fails the whole lookup, even if other entries are usable.

    Args:
        s3_client: The boto3 S3 client.
        bucket: The bucket the upload pipeline writes images to.
        request_id: The correlation identifier of the upload session.
        logger: The Powertools Logger instance for structured logging.
        key_prefix: The prefix under which each request's objects live.
        scheme: The URI scheme of the returned reference.

    Returns:
        `"<scheme>://<bucket>/<key>"`, or None when no object exists yet.

    Raises:
        ResolutionError: If the listing call fails or returns a malformed entry.
    """
    prefix = f"{key_prefix}{request_id}/"
    logger.info("Listing objects for request.", extra={"bucket": bucket, "prefix": prefix})

    try:
        response = s3_client.list_objects_v2(Bucket=bucket, Prefix=prefix)
    except (ClientError, BotoCoreError) as e:
        raise ResolutionError(
            f"Failed to list objects under s3://{bucket}/{prefix}: {e}",
            timed_out=isinstance(e, _TIMEOUT_ERRORS),
        ) from e

    selected = select_most_recent(build_object_references(response.get("Contents", [])))
    if selected is None:
        logger.info("No objects found in S3.", extra={"prefix": prefix})
        return None

    final_image_key = f"{scheme}://{bucket}/{selected.key}"
    logger.info("Resolved final image key.", extra={"final_image_key": final_image_key})
    return final_image_key


def resolve_final_image_key(
    s3_client: S3Client,
    bucket: str,
    request_id: str,
    logger: Logger,
    key_prefix: str = "images/",
    scheme: str = "s3",
) -> Resolution:
    """Runs `find_final_image_key` and reports its outcome as a Resolution."""
    try:
        key = find_final_image_key(
            s3_client, bucket, request_id, logger, key_prefix=key_prefix, scheme=scheme
        )
    except ResolutionError as e:
        logger.error(
            "Final image key lookup failed.",
            extra={"request_id": request_id, "error": str(e), "timed_out": e.timed_out},
        )
        return Resolution.failed(e)

    if key is None:
        return Resolution.not_found()
    return Resolution.found(key)


def persist_record(table: Table, record: ResolvedRecord, logger: Logger) -> None:
    """
    Writes a record with a single unconditional put_item.

    The write carries no condition expression: repeating it with the same
    primary key overwrites the previous item and the last writer wins.

    Raises:
        WriteError: If DynamoDB rejects the write or the call fails in transit.
    """
    try:
        table.put_item(Item=record.to_item())
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Failed to write metadata to DynamoDB.",
            extra={"request_id": record.request_id, "table": table.name, "error": str(e)},
        )
        raise WriteError(
            f"Failed to write record for request '{record.request_id}': {e}",
            timed_out=isinstance(e, _TIMEOUT_ERRORS),
        ) from e

    logger.info(
        "Successfully wrote metadata to DynamoDB.",
        extra={"request_id": record.request_id, "table": table.name},
    )


def handle_upload(
    inbound: InboundMetadata, deps: IngestDependencies, logger: Logger
) -> ResolvedRecord:
    """
    Resolves the final image key for an upload and persists the merged record.

    Args:
        inbound: The validated caller metadata.
        deps: The shared clients and settings.
        logger: The Powertools Logger instance for structured logging.

    Returns:
        The record that was written.

    Raises:
        ResolutionError: If the lookup failed and the "reject" policy is active.
        WriteError: If the record could not be written.
    """
    settings = deps.settings
    resolution = resolve_final_image_key(
        deps.s3_client,
        settings.image_bucket,
        inbound.request_id,
        logger,
        key_prefix=settings.key_prefix,
        scheme=settings.uri_scheme,
    )

    if resolution.status is ResolutionStatus.FOUND:
        final_image_key = resolution.key or UNRESOLVED_KEY
    elif resolution.status is ResolutionStatus.NOT_FOUND:
        final_image_key = UNRESOLVED_KEY
    else:
        if settings.resolution_failure_policy != "fallback":
            raise cast(ResolutionError, resolution.cause)
        logger.warning(
            "Storing record without a final image key after a failed lookup.",
            extra={"request_id": inbound.request_id},
        )
        final_image_key = UNRESOLVED_KEY

    record = ResolvedRecord.from_inbound(inbound, final_image_key)
    persist_record(deps.table, record, logger)
    return record


def emit_metrics(
    environment: str, status: str, payload: Dict[str, Any], logger: Logger
) -> None:
    """
    Formats and logs metrics in CloudWatch Embedded Metric Format (EMF).

    Dashboards and alarms should filter/group by the 'Environment' dimension.
    """
    base_metrics = {
        "RecordsWritten": payload.get("records_written", 0),
        "UnresolvedKeys": payload.get("unresolved_keys", 0),
    }
    if "latency_ms" in payload:
        base_metrics["ProcessingLatencyMs"] = payload["latency_ms"]

    emf_payload = {
        "_aws": {
            "Timestamp": int(datetime.now(timezone.utc).timestamp() * 1000),
            "CloudWatchMetrics": [
                {
                    "Namespace": "ImageMetadataIngest",
                    "Dimensions": [["Environment"]],
                    "Metrics": [
                        {"Name": k, "Unit": "Milliseconds" if "Latency" in k else "Count"}
                        for k in base_metrics
                    ],
                }
            ],
        },
        "Environment": environment,
        "Status": status,
        **base_metrics,
        **payload,
    }
    logger.info(json.dumps(emf_payload))
