"""
TextStation Backend — Google Service Account Credentials
=========================================================

What:  Builds google-auth service-account credentials from the configured
       client email and private key.
Why:   Drive search and Drive backup need different OAuth scopes. Each
       consumer asks the provider for its own scope set instead of sharing
       one process-wide client.
Who:   Injected into DriveService; health checks read `is_configured`.

Caching:
    Credentials are built once per scope set and kept on the provider
    instance. google-auth refreshes the access token inside the credentials
    object, so a cached object stays usable for the lifetime of the process.
    Tests create their own provider and never see another test's cache.
"""

import logging
from typing import Dict, FrozenSet, Iterable, Optional

from google.oauth2 import service_account

from textstation.config import settings
from textstation.exceptions import DriveServiceError

logger = logging.getLogger(__name__)

DRIVE_READONLY_SCOPES = ("https://www.googleapis.com/auth/drive.readonly",)
DRIVE_FILE_SCOPES = (
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/drive.appdata",
)

TOKEN_URI = "https://oauth2.googleapis.com/token"


class GoogleCredentialsProvider:
    """Creates and caches service-account credentials per scope set."""

    def __init__(
        self,
        client_email: Optional[str],
        private_key: Optional[str],
        project_id: Optional[str] = None,
    ):
        self.client_email = client_email
        self.private_key = private_key
        self.project_id = project_id
        self._cache: Dict[FrozenSet[str], service_account.Credentials] = {}

    @classmethod
    def from_settings(cls) -> "GoogleCredentialsProvider":
        return cls(
            client_email=settings.google_client_email,
            private_key=settings.google_private_key_pem,
            project_id=settings.google_project_id,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.client_email and self.private_key)

    def get_credentials(self, scopes: Iterable[str]) -> service_account.Credentials:
        """
        Return credentials for the given scopes.

        Raises:
            DriveServiceError: Credentials are not configured or the private
                key cannot be parsed.
        """
        key = frozenset(scopes)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if not self.is_configured:
            raise DriveServiceError(
                message="Google Drive credentials are not configured",
                context={"missing": "GOOGLE_CLIENT_EMAIL/GOOGLE_PRIVATE_KEY"},
            )

        info = {
            "type": "service_account",
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": TOKEN_URI,
        }
        if self.project_id:
            info["project_id"] = self.project_id

        try:
            credentials = service_account.Credentials.from_service_account_info(
                info, scopes=sorted(key)
            )
        except (ValueError, KeyError) as e:
            logger.error("Invalid Google service account credentials: %s", str(e))
            raise DriveServiceError(
                message="Google Drive credentials are invalid",
                context={"error_type": type(e).__name__},
            )

        logger.info("Google credentials created for scopes: %s", ", ".join(sorted(key)))
        self._cache[key] = credentials
        return credentials
