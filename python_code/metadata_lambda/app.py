"""
Main AWS Lambda handler for the Image Metadata Ingest service.

This module serves as the primary entry point for API Gateway requests.
Its responsibilities include:
  - Routing `POST /upload` and answering CORS preflight requests.
  - Building the shared clients once per execution environment.
  - Parsing the request body into InboundMetadata.
  - Calling the pure, testable business logic in the 'core' module.
  - Mapping the error taxonomy onto structured HTTP responses and metrics.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from aws_lambda_powertools import Logger
from aws_lambda_powertools.event_handler import (
    APIGatewayRestResolver,
    CORSConfig,
    Response,
    content_types,
)
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext

from . import clients, config, core
from .errors import StoreError, ValidationError
from .model import IngestDependencies, parse_inbound_metadata

SUCCESS_MESSAGE = "Successfully received metadata and wrote to DynamoDB"
TEXT_PLAIN = "text/plain"

logger = Logger(service="image-metadata-ingest")

cors_config = CORSConfig(allow_origin="*", allow_headers=["Content-Type", "Authorization"])
app = APIGatewayRestResolver(cors=cors_config)

_DEPENDENCIES: Optional[IngestDependencies] = None


def get_dependencies(force_refresh: bool = False) -> IngestDependencies:
    """
    Returns the clients and settings shared by every request.

    They are built on first use (the cold start) and reused by later
    invocations in the same execution environment.

    Args:
        force_refresh: If True, reloads settings and rebuilds the clients.

    Raises:
        ValueError: If the environment holds invalid configuration.
    """
    global _DEPENDENCIES
    if _DEPENDENCIES is not None and not force_refresh:
        return _DEPENDENCIES

    settings = config.load_settings()
    s3_client, dynamodb_resource = clients.get_boto_clients(settings)
    _DEPENDENCIES = IngestDependencies(
        settings=settings,
        s3_client=s3_client,
        table=dynamodb_resource.Table(settings.metadata_table),
    )
    logger.info(
        "Initialized ingest dependencies.",
        extra={"bucket": settings.image_bucket, "table": settings.metadata_table},
    )
    return _DEPENDENCIES


def _error_response(status_code: int, error: Exception) -> Response:
    """Centralized helper to build a structured error response."""
    body = {"error": {"type": type(error).__name__, "message": str(error)}}
    return Response(
        status_code=status_code,
        content_type=content_types.APPLICATION_JSON,
        body=json.dumps(body),
    )


@app.exception_handler(ValidationError)
def handle_validation_error(ex: ValidationError) -> Response:
    logger.warning("Rejected malformed upload request.", extra={"error": str(ex), "fields": ex.fields})
    return _error_response(400, ex)


@app.exception_handler(StoreError)
def handle_store_error(ex: StoreError) -> Response:
    # Covers both ResolutionError and WriteError.
    return _error_response(504 if ex.timed_out else 502, ex)


def _read_json_body() -> Any:
    body = app.current_event.decoded_body
    if not body:
        raise ValidationError("Request body is empty.")
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Request body is not valid JSON: {e}") from e


@app.post("/upload")
def upload() -> Response:
    deps = get_dependencies()
    start_time = datetime.now(timezone.utc)
    try:
        inbound = parse_inbound_metadata(_read_json_body())
        logger.append_keys(request_id=inbound.request_id)
        record = core.handle_upload(inbound, deps, logger)
    except Exception as e:
        latency_ms = int((datetime.now(timezone.utc) - start_time).total_seconds() * 1000)
        error_payload = {"error_type": type(e).__name__, "error_message": str(e), "latency_ms": latency_ms}
        status = "Rejected" if isinstance(e, ValidationError) else "Failure"
        core.emit_metrics(deps.settings.environment, status, error_payload, logger)
        logger.error(f"Upload processing failed: {json.dumps(error_payload)}")
        raise

    latency_ms = int((datetime.now(timezone.utc) - start_time).total_seconds() * 1000)
    log_payload = {
        "records_written": 1,
        "unresolved_keys": 0 if record.final_image_key else 1,
        "final_image_key": record.final_image_key,
        "latency_ms": latency_ms,
    }
    core.emit_metrics(deps.settings.environment, "Success", log_payload, logger)

    return Response(
        status_code=200,
        content_type=TEXT_PLAIN,
        body=SUCCESS_MESSAGE,
    )


@logger.inject_lambda_context(
    correlation_id_path=correlation_paths.API_GATEWAY_REST, clear_state=True
)
def handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Main Lambda entry point for API Gateway REST proxy events.

    Unknown routes get a 404 from the resolver. Errors from the core are
    turned into 4xx/5xx responses by the exception handlers above; anything
    else is re-raised so the invocation is marked as failed.
    """
    return app.resolve(event, context)
