from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger("proxy-inference-server.secrets")


def get_secret_from_manager(secret_name: str, project_id: Optional[str] = None) -> str:
    """
    Fetch the latest version of a secret from Google Cloud Secret Manager.

    Args:
        secret_name: Name of the secret (e.g., "cohere-api-key")
        project_id: GCP project ID. Falls back to GCP_PROJECT / GOOGLE_CLOUD_PROJECT.

    Returns:
        The secret payload decoded as UTF-8.

    Raises:
        ValueError: If no project ID can be determined.
        google.api_core.exceptions.GoogleAPIError: If the secret cannot be read.
    """
    from google.cloud import secretmanager

    if project_id is None:
        project_id = os.environ.get("GCP_PROJECT") or os.environ.get("GOOGLE_CLOUD_PROJECT")
        if not project_id:
            raise ValueError(
                "Project ID not specified. Set GCS_PROJECT_ID, GCP_PROJECT or GOOGLE_CLOUD_PROJECT."
            )

    name = f"projects/{project_id}/secrets/{secret_name}/versions/latest"

    logger.info(f"Fetching secret from Secret Manager: {secret_name}")
    try:
        client = secretmanager.SecretManagerServiceClient()
        response = client.access_secret_version(request={"name": name})
    except Exception as e:
        logger.error(f"Failed to retrieve secret {secret_name}: {e}")
        raise

    logger.info(f"Successfully retrieved secret: {secret_name}")
    return response.payload.data.decode("UTF-8")


def should_use_secret_manager() -> bool:
    """True if USE_SECRET_MANAGER is set to "true", "1" or "yes" (case-insensitive)."""
    return os.environ.get("USE_SECRET_MANAGER", "").lower() in ("true", "1", "yes")
