"""
Data models for the Image Metadata Ingest service.

This module defines the core data structures passed between the HTTP boundary,
the key resolver and the record writer. Using dataclasses keeps the data
contracts explicit, statically checked by mypy, and self-documenting.
"""

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from mypy_boto3_dynamodb.service_resource import Table
from mypy_boto3_s3 import S3Client

from .config import Settings
from .errors import ResolutionError, ValidationError


@dataclass(frozen=True)
class InboundMetadata:
    """
    Caller-supplied metadata for an uploaded image, before key resolution.

    Attributes:
        request_id: The correlation identifier linking this upload session to
                    its eventually-written object. Opaque to this service.
    """

    url: str
    label: str
    type: str
    season: str
    show_name: str
    designer: str
    description: str
    request_id: str


INBOUND_FIELDS: List[str] = [f.name for f in fields(InboundMetadata)]


@dataclass(frozen=True)
class ResolvedRecord:
    """
    A merged record that is ready to be written to DynamoDB.

    `final_image_key` is always set by the orchestration step, with an empty
    string meaning "unresolved". `None` is only possible for records built
    directly and means the attribute is omitted from the stored item.
    """

    url: str
    label: str
    type: str
    season: str
    show_name: str
    designer: str
    description: str
    request_id: str
    final_image_key: Optional[str] = None

    @classmethod
    def from_inbound(
        cls, inbound: InboundMetadata, final_image_key: Optional[str]
    ) -> "ResolvedRecord":
        return cls(**asdict(inbound), final_image_key=final_image_key)

    def to_item(self) -> Dict[str, str]:
        """Maps the record to a DynamoDB item of string attributes."""
        item = {name: getattr(self, name) for name in INBOUND_FIELDS}
        if self.final_image_key is not None:
            item["final_image_key"] = self.final_image_key
        return item


@dataclass(frozen=True)
class ObjectReference:
    """
    A single entry from an S3 ListObjectsV2 response.

    Attributes:
        key: The object key within the bucket.
        position: The index of the entry in the listing response.
        last_modified: The object's LastModified timestamp, if reported.
    """

    key: str
    position: int
    last_modified: Optional[datetime] = None


class ResolutionStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Resolution:
    """
    The three-state outcome of a key lookup.

    Callers must branch on `status` explicitly: a FAILED lookup is never the
    same thing as a confirmed NOT_FOUND.
    """

    status: ResolutionStatus
    key: Optional[str] = None
    cause: Optional[ResolutionError] = None

    @classmethod
    def found(cls, key: str) -> "Resolution":
        return cls(ResolutionStatus.FOUND, key=key)

    @classmethod
    def not_found(cls) -> "Resolution":
        return cls(ResolutionStatus.NOT_FOUND)

    @classmethod
    def failed(cls, cause: ResolutionError) -> "Resolution":
        return cls(ResolutionStatus.FAILED, cause=cause)


@dataclass(frozen=True)
class IngestDependencies:
    """
    Long-lived collaborators shared by every request in an execution environment.

    Built once at cold start and handed to the core functions explicitly.
    Nothing in here is mutated after construction.
    """

    settings: Settings
    s3_client: S3Client
    table: Table


def parse_inbound_metadata(payload: Any) -> InboundMetadata:
    """
    Builds an InboundMetadata from a decoded JSON body.

    Only presence and string type are checked; unknown keys are ignored.

    Raises:
        ValidationError: If the payload is not an object, or any required
                         field is missing, not a string, or empty.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")

    missing = [name for name in INBOUND_FIELDS if name not in payload]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)

    invalid = [
        name
        for name in INBOUND_FIELDS
        if not isinstance(payload[name], str) or not payload[name]
    ]
    if invalid:
        raise ValidationError(
            f"Fields must be non-empty strings: {', '.join(invalid)}", invalid
        )

    return InboundMetadata(**{name: payload[name] for name in INBOUND_FIELDS})
