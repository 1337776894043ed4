"""
Tests for environment-driven configuration and client construction.
"""

import pytest

from metadata_lambda import clients, config
from metadata_lambda.config import Settings

ENV_VARS = [
    "IMAGE_BUCKET",
    "METADATA_TABLE",
    "IMAGE_KEY_PREFIX",
    "OBJECT_URI_SCHEME",
    "RESOLUTION_FAILURE_POLICY",
    "AWS_REGION",
    "AWS_ENDPOINT_URL",
    "ENVIRONMENT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestGetEnvVar:
    def test_required_variable_missing(self, clean_env):
        with pytest.raises(ValueError, match="IMAGE_BUCKET"):
            config.get_env_var("IMAGE_BUCKET")

    def test_default_used(self, clean_env):
        assert config.get_env_var("IMAGE_BUCKET", "fallback") == "fallback"


class TestLoadSettings:
    def test_defaults(self, clean_env):
        settings = config.load_settings()
        assert settings == Settings()
        assert settings.image_bucket == "team-3-project-3"
        assert settings.metadata_table == "project-3-testing"
        assert settings.key_prefix == "images/"
        assert settings.resolution_failure_policy == "reject"

    def test_overrides(self, clean_env):
        clean_env.setenv("IMAGE_BUCKET", "images")
        clean_env.setenv("METADATA_TABLE", "metadata")
        clean_env.setenv("RESOLUTION_FAILURE_POLICY", "FALLBACK")
        clean_env.setenv("AWS_REGION", "eu-west-2")
        clean_env.setenv("AWS_ENDPOINT_URL", "http://localhost:4566")

        settings = config.load_settings()
        assert settings.image_bucket == "images"
        assert settings.metadata_table == "metadata"
        assert settings.resolution_failure_policy == "fallback"
        assert settings.aws_region == "eu-west-2"
        assert settings.endpoint_url == "http://localhost:4566"

    def test_unknown_failure_policy(self, clean_env):
        clean_env.setenv("RESOLUTION_FAILURE_POLICY", "ignore")
        with pytest.raises(ValueError, match="RESOLUTION_FAILURE_POLICY"):
            config.load_settings()

    def test_empty_bucket_rejected(self, clean_env):
        clean_env.setenv("IMAGE_BUCKET", "")
        with pytest.raises(ValueError, match="image_bucket"):
            config.load_settings()


class TestGetBotoClients:
    def test_clients_use_configured_region(self, aws):
        s3_client, dynamodb_resource = clients.get_boto_clients(Settings(aws_region="eu-west-1"))
        assert s3_client.meta.region_name == "eu-west-1"
        assert dynamodb_resource.meta.client.meta.region_name == "eu-west-1"

    def test_endpoint_override(self, aws):
        s3_client, _ = clients.get_boto_clients(
            Settings(aws_region="us-east-1", endpoint_url="http://localhost:4566")
        )
        assert s3_client.meta.endpoint_url == "http://localhost:4566"
