"""Google Cloud Secret Manager backend (requires google-cloud-secret-manager)."""

from __future__ import annotations

import structlog

from secretenv.backends import BaseSecretBackend, SecretPlatform, _sanitize_error
from secretenv.core.errors import BackendError

logger = structlog.get_logger()


def secret_version_name(project: str, secret_name: str, version: str) -> str:
    return f"projects/{project}/secrets/{secret_name}/versions/{version}"


class GoogleCloudSecretBackend(BaseSecretBackend):
    """Google Cloud Secret Manager backend. The address account is the project id."""

    platform = SecretPlatform.GOOGLE_CLOUD

    def _get_client(self):
        def factory():
            from google.cloud import secretmanager

            return secretmanager.SecretManagerServiceClient()

        # Credentials come from the ADC chain, so one client serves every project
        return self._client_for("default", factory)

    def fetch_secret(
        self, account: str, service: str, secret_name: str, version: str, region: str
    ) -> str:
        name = secret_version_name(account, secret_name, version or "latest")
        logger.debug(
            "accessing_secret", platform=str(self.platform), project=account, secret=secret_name
        )
        try:
            client = self._get_client()
            response = client.access_secret_version(request={"name": name})
        except Exception as e:
            logger.debug("gcp_secret_fetch_failed", secret=secret_name, error=_sanitize_error(e))
            raise BackendError(
                f"failed to access secret version '{name}'",
                {"platform": str(self.platform), "cause": _sanitize_error(e)},
            ) from e

        payload = getattr(response, "payload", None)
        if payload is None or payload.data is None:
            raise BackendError(
                f"secret payload is empty for '{secret_name}'",
                {"platform": str(self.platform)},
            )
        return payload.data.decode("UTF-8")
