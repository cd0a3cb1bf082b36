"""AWS Secrets Manager backend (requires boto3)."""

from __future__ import annotations

import structlog

from secretenv.backends import BaseSecretBackend, SecretPlatform, _sanitize_error
from secretenv.core.errors import BackendError

logger = structlog.get_logger()

# Static credentials accepted by LocalStack-style emulators
EMULATOR_ACCESS_KEY_ID = "test"
EMULATOR_SECRET_ACCESS_KEY = "test"


class AWSSecretBackend(BaseSecretBackend):
    """AWS Secrets Manager backend.

    The address account is the shared-config profile name. When an endpoint
    URL is configured the profile is ignored and emulator credentials are used.
    """

    platform = SecretPlatform.AWS

    def __init__(self, endpoint_url: str | None = None):
        super().__init__()
        self.endpoint_url = endpoint_url or None

    def _create_client(self, profile: str, region: str):
        import boto3

        if self.endpoint_url:
            session = boto3.session.Session(region_name=region or None)
            return session.client(
                "secretsmanager",
                endpoint_url=self.endpoint_url,
                aws_access_key_id=EMULATOR_ACCESS_KEY_ID,
                aws_secret_access_key=EMULATOR_SECRET_ACCESS_KEY,
            )

        session = boto3.session.Session(profile_name=profile or None, region_name=region or None)
        return session.client("secretsmanager")

    def _get_client(self, profile: str, region: str):
        client_key = f"{profile}:{region}:{self.endpoint_url or ''}"
        return self._client_for(client_key, lambda: self._create_client(profile, region))

    def fetch_secret(
        self, account: str, service: str, secret_name: str, version: str, region: str
    ) -> str:
        logger.debug(
            "accessing_secret",
            platform=str(self.platform),
            profile=account,
            region=region,
            secret=secret_name,
        )
        try:
            client = self._get_client(account, region)
            kwargs = {"SecretId": secret_name}
            if version:
                kwargs["VersionStage"] = version
            response = client.get_secret_value(**kwargs)
        except Exception as e:
            logger.debug("aws_secret_fetch_failed", secret=secret_name, error=_sanitize_error(e))
            raise BackendError(
                f"failed to get secret value for '{secret_name}'",
                {"platform": str(self.platform), "cause": _sanitize_error(e)},
            ) from e

        secret_string = response.get("SecretString")
        if secret_string is None:
            raise BackendError(
                f"secret string is empty for '{secret_name}'",
                {"platform": str(self.platform)},
            )
        return secret_string
