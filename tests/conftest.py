"""
Shared fixtures for the Image Metadata Ingest tests.

AWS calls are intercepted by moto; nothing here talks to a real account.
"""

from dataclasses import dataclass

import boto3
import pytest
from aws_lambda_powertools import Logger
from moto import mock_aws

from metadata_lambda.config import Settings
from metadata_lambda.model import IngestDependencies

REGION = "us-east-1"
BUCKET = "team-3-project-3"
TABLE = "project-3-testing"


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials so boto3 never picks up a real profile."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("USE_MOTO", "1")


@pytest.fixture
def aws(aws_credentials):
    with mock_aws():
        yield


@pytest.fixture
def s3_client(aws):
    client = boto3.client("s3", region_name=REGION)
    client.create_bucket(Bucket=BUCKET)
    return client


@pytest.fixture
def metadata_table(aws):
    dynamodb = boto3.resource("dynamodb", region_name=REGION)
    return dynamodb.create_table(
        TableName=TABLE,
        KeySchema=[{"AttributeName": "request_id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "request_id", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )


@pytest.fixture
def settings():
    return Settings(image_bucket=BUCKET, metadata_table=TABLE, aws_region=REGION)


@pytest.fixture
def deps(settings, s3_client, metadata_table):
    return IngestDependencies(settings=settings, s3_client=s3_client, table=metadata_table)


@pytest.fixture
def logger():
    return Logger(service="image-metadata-ingest-test")


@pytest.fixture
def payload():
    return {
        "url": "u",
        "label": "Number Nine",
        "type": "pant",
        "season": "FW/04",
        "show_name": "The High Streets",
        "designer": "Takahiro Miyashita",
        "description": "d",
        "request_id": "42",
    }


@dataclass
class FakeLambdaContext:
    function_name: str = "image-metadata-ingest"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:image-metadata-ingest"
    aws_request_id: str = "da658bd3-2d6f-4e7b-8ec2-937234644fdc"


@pytest.fixture
def lambda_context():
    return FakeLambdaContext()
