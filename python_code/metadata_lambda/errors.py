"""
Exception taxonomy for the Image Metadata Ingest service.

Every error raised by the core carries enough information for the HTTP
boundary to choose a status code without inspecting the underlying boto3
exception.
"""

from typing import List, Optional


class IngestError(Exception):
    """Base class for all errors raised by this service."""


class ValidationError(IngestError):
    """The inbound payload could not be parsed into InboundMetadata."""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class StoreError(IngestError):
    """
    A collaborator store failed or returned unusable data.

    Attributes:
        timed_out: True when the failure was a connect or read timeout.
    """

    def __init__(self, message: str, timed_out: bool = False):
        super().__init__(message)
        self.timed_out = timed_out


class ResolutionError(StoreError):
    """S3 listing failed, or returned an entry with no usable key."""


class WriteError(StoreError):
    """The DynamoDB put failed at the transport or service level."""
