"""Tests for backends/.

Tests for the backend registry, the shared secret cache and the cloud
backends (AWS Secrets Manager, Google Cloud Secret Manager).
"""

import dataclasses
from unittest.mock import MagicMock, patch

import pytest

from secretenv.address import parse_address
from secretenv.backends import (
    BackendConfig,
    SecretPlatform,
    _sanitize_error,
    create_backends,
    get_backend,
)
from secretenv.backends.aws import AWSSecretBackend
from secretenv.backends.gcp import GoogleCloudSecretBackend, secret_version_name
from secretenv.core.errors import BackendError, BackendUnavailableError


class TestSanitizeError:
    """Tests for _sanitize_error helper."""

    def test_returns_exception_type(self):
        """Returns exception type name."""
        assert _sanitize_error(ValueError("sensitive details")) == "ValueError"


class TestSecretPlatform:
    """Tests for SecretPlatform enum."""

    def test_values(self):
        assert SecretPlatform.AWS == "aws"
        assert SecretPlatform.GOOGLE_CLOUD == "googlecloud"


class TestRegistry:
    """Tests for create_backends and get_backend."""

    def test_creates_all_platforms_by_default(self):
        backends = create_backends()

        assert isinstance(backends["aws"], AWSSecretBackend)
        assert isinstance(backends["googlecloud"], GoogleCloudSecretBackend)

    def test_only_enabled_platforms(self):
        backends = create_backends(BackendConfig(platforms=[SecretPlatform.GOOGLE_CLOUD]))

        assert list(backends) == ["googlecloud"]

    def test_endpoint_passed_to_aws(self):
        backends = create_backends(BackendConfig(aws_endpoint_url="http://localhost:4566"))

        assert backends["aws"].endpoint_url == "http://localhost:4566"

    def test_get_backend(self):
        backends = create_backends()

        assert get_backend(backends, "aws") is backends["aws"]

    def test_get_backend_unknown_platform(self):
        with pytest.raises(BackendUnavailableError, match="unsupported platform 'azure'"):
            get_backend(create_backends(), "azure")


class TestSecretCache:
    """Tests for the per-backend secret cache."""

    def test_fetches_once_per_cache_key(self, static_backend):
        backend = static_backend({"db": "value"})
        address = parse_address("sem://aws:secretsmanager/dev/db")

        assert backend.get_secret(address) == "value"
        assert backend.get_secret(dataclasses.replace(address, key="password")) == "value"
        assert len(backend.calls) == 1

    def test_distinct_regions_fetch_separately(self, static_backend):
        backend = static_backend({"db": "value"})

        backend.get_secret(parse_address("sem://aws:secretsmanager/dev/db"))
        backend.get_secret(parse_address("sem://aws:secretsmanager/dev/db?region=us-east-1"))

        assert len(backend.calls) == 2

    def test_errors_are_not_cached(self, static_backend):
        backend = static_backend({})
        address = parse_address("sem://aws:secretsmanager/dev/db")

        with pytest.raises(BackendError):
            backend.get_secret(address)
        backend.secrets["db"] = "late"

        assert backend.get_secret(address) == "late"


class TestAWSSecretBackend:
    """Tests for AWSSecretBackend."""

    def test_init(self):
        backend = AWSSecretBackend()
        assert backend.endpoint_url is None
        assert backend._clients == {}

    def test_fetch_uses_profile_and_region(self):
        """The account is used as the shared-config profile."""
        mock_boto3 = MagicMock()
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {"SecretString": '{"a": 1}'}
        mock_boto3.session.Session.return_value.client.return_value = mock_client

        with patch.dict("sys.modules", {"boto3": mock_boto3}):
            backend = AWSSecretBackend()
            result = backend.fetch_secret(
                "dev", "secretsmanager", "db/creds", "AWSCURRENT", "ap-northeast-1"
            )

        assert result == '{"a": 1}'
        mock_boto3.session.Session.assert_called_once_with(
            profile_name="dev", region_name="ap-northeast-1"
        )
        mock_boto3.session.Session.return_value.client.assert_called_once_with("secretsmanager")
        mock_client.get_secret_value.assert_called_once_with(
            SecretId="db/creds", VersionStage="AWSCURRENT"
        )

    def test_fetch_with_endpoint_uses_emulator_credentials(self):
        mock_boto3 = MagicMock()
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {"SecretString": "v"}
        mock_boto3.session.Session.return_value.client.return_value = mock_client

        with patch.dict("sys.modules", {"boto3": mock_boto3}):
            backend = AWSSecretBackend(endpoint_url="http://localhost:4566")
            backend.fetch_secret("dev", "secretsmanager", "db", "AWSCURRENT", "us-east-1")

        mock_boto3.session.Session.assert_called_once_with(region_name="us-east-1")
        mock_boto3.session.Session.return_value.client.assert_called_once_with(
            "secretsmanager",
            endpoint_url="http://localhost:4566",
            aws_access_key_id="test",
            aws_secret_access_key="test",
        )

    def test_clients_cached_per_profile_and_region(self):
        mock_boto3 = MagicMock()
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {"SecretString": "v"}
        mock_boto3.session.Session.return_value.client.return_value = mock_client

        with patch.dict("sys.modules", {"boto3": mock_boto3}):
            backend = AWSSecretBackend()
            backend.fetch_secret("dev", "secretsmanager", "a", "AWSCURRENT", "eu-west-1")
            backend.fetch_secret("dev", "secretsmanager", "b", "AWSCURRENT", "eu-west-1")
            backend.fetch_secret("prod", "secretsmanager", "a", "AWSCURRENT", "eu-west-1")

        assert mock_boto3.session.Session.call_count == 2
        assert sorted(backend._clients) == ["dev:eu-west-1:", "prod:eu-west-1:"]

    def test_missing_secret_string(self):
        """Binary-only secrets are rejected."""
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {"SecretBinary": b"\x00"}

        backend = AWSSecretBackend()
        backend._clients["dev:us-east-1:"] = mock_client

        with pytest.raises(BackendError, match="secret string is empty"):
            backend.fetch_secret("dev", "secretsmanager", "bin", "AWSCURRENT", "us-east-1")

    def test_sdk_error_wrapped(self):
        """SDK errors become BackendError without leaking their message."""
        mock_client = MagicMock()
        mock_client.get_secret_value.side_effect = RuntimeError("token=abc")

        backend = AWSSecretBackend()
        backend._clients["dev:us-east-1:"] = mock_client

        with pytest.raises(BackendError) as exc_info:
            backend.fetch_secret("dev", "secretsmanager", "db", "AWSCURRENT", "us-east-1")

        assert exc_info.value.details["cause"] == "RuntimeError"
        assert "token=abc" not in exc_info.value.message

    def test_get_secret_caches(self):
        mock_client = MagicMock()
        mock_client.get_secret_value.return_value = {"SecretString": "v"}

        backend = AWSSecretBackend()
        backend._clients["dev:ap-northeast-1:"] = mock_client
        address = parse_address("sem://aws:secretsmanager/dev/db")

        backend.get_secret(address)
        backend.get_secret(address)

        assert mock_client.get_secret_value.call_count == 1


class TestGoogleCloudSecretBackend:
    """Tests for GoogleCloudSecretBackend."""

    def test_secret_version_name(self):
        assert secret_version_name("proj", "api", "3") == "projects/proj/secrets/api/versions/3"

    def test_fetch_secret(self):
        mock_client = MagicMock()
        mock_client.access_secret_version.return_value.payload.data = b"secret-value"

        backend = GoogleCloudSecretBackend()
        backend._clients["default"] = mock_client

        result = backend.fetch_secret("proj", "secretmanager", "api", "latest", "")

        assert result == "secret-value"
        mock_client.access_secret_version.assert_called_once_with(
            request={"name": "projects/proj/secrets/api/versions/latest"}
        )

    def test_empty_version_means_latest(self):
        mock_client = MagicMock()
        mock_client.access_secret_version.return_value.payload.data = b"v"

        backend = GoogleCloudSecretBackend()
        backend._clients["default"] = mock_client
        backend.fetch_secret("proj", "secretmanager", "api", "", "")

        mock_client.access_secret_version.assert_called_once_with(
            request={"name": "projects/proj/secrets/api/versions/latest"}
        )

    def test_client_created_lazily(self):
        mock_google = MagicMock()
        mock_secretmanager = mock_google.cloud.secretmanager
        mock_client = mock_secretmanager.SecretManagerServiceClient.return_value
        mock_client.access_secret_version.return_value.payload.data = b"v"

        with patch.dict(
            "sys.modules",
            {
                "google": mock_google,
                "google.cloud": mock_google.cloud,
                "google.cloud.secretmanager": mock_secretmanager,
            },
        ):
            backend = GoogleCloudSecretBackend()
            backend.fetch_secret("proj", "secretmanager", "a", "latest", "")
            backend.fetch_secret("other", "secretmanager", "b", "latest", "")

        mock_secretmanager.SecretManagerServiceClient.assert_called_once_with()

    def test_sdk_error_wrapped(self):
        mock_client = MagicMock()
        mock_client.access_secret_version.side_effect = PermissionError("denied")

        backend = GoogleCloudSecretBackend()
        backend._clients["default"] = mock_client

        with pytest.raises(BackendError) as exc_info:
            backend.fetch_secret("proj", "secretmanager", "api", "latest", "")

        assert exc_info.value.details["cause"] == "PermissionError"

    def test_missing_payload(self):
        mock_client = MagicMock()
        mock_client.access_secret_version.return_value.payload = None

        backend = GoogleCloudSecretBackend()
        backend._clients["default"] = mock_client

        with pytest.raises(BackendError, match="payload is empty"):
            backend.fetch_secret("proj", "secretmanager", "api", "latest", "")
