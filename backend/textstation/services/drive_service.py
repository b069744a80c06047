"""
TextStation Backend — Google Drive Service
===========================================

What:  Full-text search over the service account's Drive, with a keyword
       preview per hit, and upload of exported PDFs as a Drive backup.
Who:   search() is called by routes/drive.py; upload_pdf() by ExportService.

Threading:
    google-api-python-client is synchronous and its service objects are not
    thread-safe. Each operation builds its own service object and runs start
    to finish inside a single asyncio.to_thread() call, so the event loop is
    never blocked and no client object is shared between threads.

Search query shape:
    fullText contains 'keyword' and trashed=false
        [and (mimeType="…" or mimeType="…")]
        [and modifiedTime > '2024-01-01T00:00:00.000Z']
"""

import asyncio
import calendar
import io
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from textstation.config import settings
from textstation.exceptions import DriveServiceError
from textstation.schemas.drive import SearchItem, SearchResponse
from textstation.services.google_credentials import (
    DRIVE_FILE_SCOPES,
    DRIVE_READONLY_SCOPES,
    GoogleCredentialsProvider,
)

logger = logging.getLogger(__name__)

GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"
PDF_MIME_TYPE = "application/pdf"

FILE_TYPE_MIME_TYPES = {
    "docs": GOOGLE_DOC_MIME_TYPE,
    "pdf": PDF_MIME_TYPE,
    "text": "text/plain",
}

SEARCH_FIELDS = "nextPageToken, files(id, name, mimeType, webViewLink, modifiedTime)"

# ── Preview texts (shown verbatim in the search panel) ────────────────────
PREVIEW_UNAVAILABLE = "プレビューするにはリンクをクリックしてください。"
PREVIEW_FETCH_FAILED = "コンテンツを取得できませんでした。"
PREVIEW_NO_MATCH = "キーワードの一致箇所のプレビューを取得できませんでした。"

SNIPPET_CONTEXT_CHARS = 50
SNIPPET_MAX_LENGTH = 150
ELLIPSIS = "..."

BACKUP_DESCRIPTION = "TextStation Proから出力されたPDFファイル"


@dataclass(frozen=True)
class DriveUploadResult:
    """Outcome of a Drive backup. `url` is set only when `uploaded`."""
    uploaded: bool
    url: Optional[str] = None
    error: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Query building and previews (pure functions)
# ══════════════════════════════════════════════════════════════════════════


def escape_query_value(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _months_before(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp to the last day of the target month (e.g. 31 Mar → 28/29 Feb)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_threshold(period: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Start of the modification window for a period code.

    Returns None for "all" or no period.
    """
    if not period or period == "all":
        return None
    now = now or datetime.now(timezone.utc)
    if period == "1w":
        return now - timedelta(days=7)
    if period == "1m":
        return _months_before(now, 1)
    if period == "3m":
        return _months_before(now, 3)
    return None


def build_search_query(
    keyword: str,
    file_types: Optional[Sequence[str]] = None,
    period: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Build the Drive `q` parameter for a keyword search."""
    query = f"fullText contains '{escape_query_value(keyword)}' and trashed=false"

    mime_clauses = [
        f'mimeType="{FILE_TYPE_MIME_TYPES[file_type]}"'
        for file_type in FILE_TYPE_MIME_TYPES
        if file_types and file_type in file_types
    ]
    if mime_clauses:
        query += " and (" + " or ".join(mime_clauses) + ")"

    threshold = period_threshold(period, now)
    if threshold is not None:
        stamp = threshold.astimezone(timezone.utc).isoformat(timespec="milliseconds")
        query += f" and modifiedTime > '{stamp.replace('+00:00', 'Z')}'"

    return query


def extract_snippet(text: str, keyword: str) -> str:
    """
    Cut a preview around the first case-insensitive occurrence of keyword.

    Up to 50 characters of context are kept on either side, within a line.
    Previews longer than 150 characters keep their tail behind a leading
    "...", and a trailing "..." is added unless the preview ends with ".".
    """
    pattern = re.compile(
        f"(.{{0,{SNIPPET_CONTEXT_CHARS}}}{re.escape(keyword)}.{{0,{SNIPPET_CONTEXT_CHARS}}})",
        re.IGNORECASE,
    )
    match = pattern.search(text)
    if not match or not match.group(1):
        return PREVIEW_NO_MATCH

    snippet = match.group(1)
    if len(snippet) > SNIPPET_MAX_LENGTH:
        snippet = ELLIPSIS + snippet[-(SNIPPET_MAX_LENGTH - len(ELLIPSIS)):]
    if not snippet.endswith("."):
        snippet += ELLIPSIS
    return snippet


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════


class DriveService:
    """Drive API access through an injected credentials provider."""

    def __init__(
        self,
        credentials_provider: GoogleCredentialsProvider,
        page_size: Optional[int] = None,
    ):
        self.credentials_provider = credentials_provider
        self.page_size = page_size or settings.drive_page_size

    def _build_client(self, scopes: Sequence[str]) -> Any:
        credentials = self.credentials_provider.get_credentials(scopes)
        return build("drive", "v3", credentials=credentials, cache_discovery=False)

    async def search(
        self,
        keyword: str,
        file_types: Optional[Sequence[str]] = None,
        period: Optional[str] = None,
    ) -> SearchResponse:
        """
        Search Drive for files containing keyword.

        Raises:
            DriveServiceError: Credentials missing or the Drive query failed.
                A failed preview for one file does not fail the search.
        """
        query = build_search_query(keyword, file_types, period)
        logger.info("Drive search: %s", query)

        try:
            return await asyncio.to_thread(self._search_sync, query, keyword)
        except DriveServiceError:
            raise
        except Exception as e:
            logger.error("Drive search failed: %s", str(e), exc_info=True)
            raise DriveServiceError(
                message=f"Drive search failed: {e}",
                context={"error_type": type(e).__name__},
            )

    def _search_sync(self, query: str, keyword: str) -> SearchResponse:
        client = self._build_client(DRIVE_READONLY_SCOPES)
        response: Dict[str, Any] = client.files().list(
            q=query,
            pageSize=self.page_size,
            fields=SEARCH_FIELDS,
            orderBy="modifiedTime desc",
        ).execute()

        items: List[SearchItem] = []
        for file in response.get("files", []):
            items.append(
                SearchItem(
                    id=file["id"],
                    title=file.get("name", ""),
                    mime_type=file.get("mimeType", ""),
                    web_view_link=file.get("webViewLink"),
                    modified_time=file.get("modifiedTime"),
                    snippet=self._preview(client, file, keyword),
                )
            )

        logger.info("Drive search returned %d files", len(items))
        return SearchResponse(items=items, has_more=bool(response.get("nextPageToken")))

    @staticmethod
    def _preview(client: Any, file: Dict[str, Any], keyword: str) -> str:
        if file.get("mimeType") != GOOGLE_DOC_MIME_TYPE:
            return PREVIEW_UNAVAILABLE
        try:
            content = client.files().export(fileId=file["id"], mimeType="text/plain").execute()
            if isinstance(content, bytes):
                content = content.decode("utf-8", errors="replace")
            return extract_snippet(content, keyword)
        except Exception as e:
            logger.warning("Could not export Drive file %s for preview: %s", file.get("id"), str(e))
            return PREVIEW_FETCH_FAILED

    async def upload_pdf(self, content: bytes, filename: str) -> DriveUploadResult:
        """
        Back up a PDF to Drive.

        Never raises: the backup is optional, so every failure is returned
        as DriveUploadResult(uploaded=False, error=...).
        """
        try:
            file_id = await asyncio.to_thread(self._upload_sync, content, filename)
        except Exception as e:
            logger.warning("Drive backup of %s failed: %s", filename, str(e))
            return DriveUploadResult(uploaded=False, error=str(e))

        url = f"https://drive.google.com/file/d/{file_id}/view"
        logger.info("PDF backed up to Drive: %s → %s", filename, file_id)
        return DriveUploadResult(uploaded=True, url=url)

    def _upload_sync(self, content: bytes, filename: str) -> str:
        client = self._build_client(DRIVE_FILE_SCOPES)
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=PDF_MIME_TYPE)
        created = client.files().create(
            body={
                "name": filename,
                "mimeType": PDF_MIME_TYPE,
                "description": BACKUP_DESCRIPTION,
            },
            media_body=media,
            fields="id",
        ).execute()
        return created["id"]


# ── Singleton Instance ────────────────────────────────────────────────────
drive_service = DriveService(GoogleCredentialsProvider.from_settings())
