"""
TextStation Backend — File Storage Service
===========================================

What:  Stores exported PDFs on local disk and resolves download paths.
Why:   Centralizes all file system access behind path checks, so routes
       never join user input onto a filesystem path themselves.
How:   Async writes with aiofiles under <storage_root>/exports/.
Who:   ExportService writes; the GET /api/files/{path} route reads.

Naming:
    An export is stored as exports/<title>.pdf, so exporting the same title
    twice replaces the earlier file. Characters that would leave the exports
    directory or upset file systems (path separators, control characters,
    leading dots) are replaced with "_", and names are cut to 200 bytes.

Download Links:
    /api/files/exports/<title>.pdf?token=<jwt>
    The token is an HS256 JWT naming the path and an expiry
    (DOWNLOAD_URL_TTL, 24 hours by default). Unsigned, expired or
    mismatched links are refused with 403.

Directory Structure:
    storage/
    └── exports/
        ├── TextStation出力ドキュメント.pdf
        └── 週報_2024-05.pdf
"""

import logging
import os
import re
import secrets
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import jwt

from textstation.config import settings
from textstation.exceptions import FileStorageError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

EXPORTS_DIR = "exports"
DOWNLOAD_TOKEN_ALGORITHM = "HS256"

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]')
# File systems cap names in bytes (255 on ext4); Japanese takes 3 per character
MAX_FILENAME_BYTES = 200
MAX_SUFFIX_BYTES = 16


def _truncate_utf8(text: str, max_bytes: int) -> str:
    return text.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")


def safe_filename(name: str) -> str:
    """
    Make a user-supplied title usable as a single path component.

    Long names are cut in the stem, so "<long title>.pdf" keeps its suffix.
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name).strip().lstrip(".")
    stem, suffix = os.path.splitext(cleaned)
    if len(suffix.encode("utf-8")) > MAX_SUFFIX_BYTES:
        stem, suffix = cleaned, ""
    stem = _truncate_utf8(stem, MAX_FILENAME_BYTES - len(suffix.encode("utf-8"))).rstrip()
    return (stem or "export") + suffix


class FileService:
    """Local file storage rooted at settings.storage_root."""

    def __init__(
        self,
        storage_root: Optional[str] = None,
        signing_key: Optional[str] = None,
        url_ttl: Optional[int] = None,
    ):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
            signing_key: Key for download tokens; defaults to
                settings.download_signing_key.
            url_ttl: Download link lifetime in seconds.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.url_ttl = url_ttl or settings.download_url_ttl

        key = signing_key or settings.download_signing_key
        if not key:
            logger.warning(
                "DOWNLOAD_SIGNING_KEY not set; download links are signed with a "
                "per-process key and stop working on restart"
            )
            key = secrets.token_urlsafe(32)
        self._signing_key = key

        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def ensure_directories(self) -> None:
        """Create the storage and exports directories. Idempotent."""
        (self.storage_root / EXPORTS_DIR).mkdir(parents=True, exist_ok=True)

    async def store_export(self, content: bytes, filename: str) -> Tuple[str, str]:
        """
        Write an exported file.

        Returns:
            Tuple of (absolute_path, relative_path), the relative path being
            what the files route serves, e.g. "exports/報告書.pdf".

        Raises:
            FileStorageError: Directory creation or the write failed.
        """
        relative_path = f"{EXPORTS_DIR}/{safe_filename(filename)}"
        absolute_path = self.storage_root / relative_path

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store export at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save the exported file. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Export stored: %s (%d bytes)", relative_path, len(content))
        return str(absolute_path), relative_path

    def resolve(self, relative_path: str) -> Path:
        """
        Map a stored file's relative path to an absolute path for serving.

        Raises:
            NotFoundError: The path escapes the storage root or the file does
                not exist. Both are reported the same way.
        """
        candidate = (self.storage_root / relative_path).resolve()
        if not candidate.is_relative_to(self.storage_root) or not candidate.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return candidate

    # ── Download Links ────────────────────────────────────────────────────

    def sign_download(
        self, relative_path: str, now: Optional[datetime] = None
    ) -> Tuple[str, datetime]:
        """
        Issue a token granting download of one stored file until it expires.

        Returns:
            Tuple of (token, expires_at).
        """
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + timedelta(seconds=self.url_ttl)
        token = jwt.encode(
            {"path": relative_path, "exp": expires_at},
            self._signing_key,
            algorithm=DOWNLOAD_TOKEN_ALGORITHM,
        )
        return token, expires_at

    def verify_download(self, relative_path: str, token: Optional[str]) -> None:
        """
        Check a download token against the requested path.

        Raises:
            PermissionDeniedError: The token is missing, expired, forged or
                was issued for another file.
        """
        if not token:
            raise PermissionDeniedError(
                message="This download link is not signed.",
                context={"path": relative_path},
            )
        try:
            claims = jwt.decode(
                token,
                self._signing_key,
                algorithms=[DOWNLOAD_TOKEN_ALGORITHM],
                options={"require": ["exp", "path"]},
            )
        except jwt.ExpiredSignatureError:
            raise PermissionDeniedError(
                message="This download link has expired. Export the document again.",
                context={"path": relative_path},
            )
        except jwt.InvalidTokenError as e:
            raise PermissionDeniedError(
                message="This download link is invalid.",
                context={"path": relative_path, "reason": str(e)},
            )

        if claims["path"] != relative_path:
            raise PermissionDeniedError(
                message="This download link is invalid.",
                context={"path": relative_path, "signed_path": claims["path"]},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
