"""
Where the dropbox gets the instructor's fingerprint secret.

The secret is the one compiled into the students' grading programs; the
dropbox only needs it to fill the ledger's ``verified`` column (and to refuse
submissions when GRADEDROP_REQUIRE_FINGERPRINT is on).

Lookup order, resolved once per process:
  1. GRADEDROP_SECRET env var
  2. Secret Manager, when running on GCP (secret id from GRADEDROP_SECRET_ID)
  3. nothing: fingerprints are recorded but not verified
"""

import logging
import os
from typing import Optional

import requests
from google.api_core import exceptions as gcp_exceptions
from google.cloud import secretmanager

from .logging_utils import log_function

logger = logging.getLogger(__name__)

FINGERPRINT_SECRET_ENV = "GRADEDROP_SECRET"
FINGERPRINT_SECRET_ID_ENV = "GRADEDROP_SECRET_ID"
FINGERPRINT_SECRET_ID = "fingerprint-secret"

PROJECT_ENV_VARS = ("GCP_PROJECT", "GOOGLE_CLOUD_PROJECT")
METADATA_PROJECT_URL = "http://metadata.google.internal/computeMetadata/v1/project/project-id"

_UNSET = object()

# Module-level caches
_sm_client: Optional[secretmanager.SecretManagerServiceClient] = None
_project_id: Optional[str] = None
_fingerprint_secret: object = _UNSET


def _get_sm_client() -> secretmanager.SecretManagerServiceClient:
    global _sm_client
    if _sm_client is None:
        _sm_client = secretmanager.SecretManagerServiceClient()
    return _sm_client


def on_gcp() -> bool:
    """True on Cloud Functions/Run or when a project is configured explicitly."""
    return bool(os.environ.get("K_SERVICE")) or any(os.environ.get(v) for v in PROJECT_ENV_VARS)


def get_project_id() -> str:
    """Project id from the environment, else from the metadata server."""
    global _project_id
    if _project_id:
        return _project_id

    for var in PROJECT_ENV_VARS:
        if os.environ.get(var):
            _project_id = os.environ[var]
            return _project_id

    response = requests.get(METADATA_PROJECT_URL, headers={"Metadata-Flavor": "Google"}, timeout=2)
    response.raise_for_status()
    _project_id = response.text.strip()
    return _project_id


@log_function
def get_secret(secret_id: str, version: str = "latest") -> str:
    """Fetch and decode one secret version, surrounding whitespace stripped."""
    name = secretmanager.SecretManagerServiceClient.secret_version_path(get_project_id(), secret_id, version)
    response = _get_sm_client().access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8").strip()


def _lookup_fingerprint_secret() -> Optional[str]:
    from_env = os.environ.get(FINGERPRINT_SECRET_ENV, "").strip()
    if from_env:
        return from_env

    if not on_gcp():
        logger.info("No fingerprint secret configured; submissions will not be verified")
        return None

    secret_id = os.environ.get(FINGERPRINT_SECRET_ID_ENV, FINGERPRINT_SECRET_ID)
    try:
        return get_secret(secret_id) or None
    except gcp_exceptions.NotFound:
        logger.warning(f"Secret '{secret_id}' not found; submissions will not be verified")
        return None


@log_function
def get_fingerprint_secret() -> Optional[str]:
    """The expected fingerprint secret, or None when verification is off.

    Secret Manager errors other than a missing secret propagate: a dropbox
    that was told to verify should not silently stop verifying.
    """
    global _fingerprint_secret
    if _fingerprint_secret is _UNSET:
        _fingerprint_secret = _lookup_fingerprint_secret()
    return _fingerprint_secret


def _reset_caches():
    """Reset module-level caches (for testing only)."""
    global _sm_client, _project_id, _fingerprint_secret
    _sm_client = None
    _project_id = None
    _fingerprint_secret = _UNSET
