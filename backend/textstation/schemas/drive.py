"""
TextStation Backend — Drive Search and PDF Export Schemas
==========================================================

What:  Request and response models for /api/search and /api/export-pdf.
"""

from typing import List, Optional

from pydantic import Field, field_validator

from textstation.schemas.common import CamelModel

SEARCH_PERIODS = {"all", "1w", "1m", "3m"}


# ══════════════════════════════════════════════════════════════════════════
# Search
# ══════════════════════════════════════════════════════════════════════════


class SearchRequest(CamelModel):
    keyword: Optional[str] = None
    file_types: Optional[List[str]] = Field(
        default=None,
        description="Any of 'docs', 'pdf', 'text'. Empty or omitted means all types.",
    )
    period: Optional[str] = Field(
        default=None,
        description="Modification window: '1w', '1m', '3m' or 'all'",
    )

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: Optional[str]) -> Optional[str]:
        """Ensures period is one of the supported windows."""
        if v is not None and v not in SEARCH_PERIODS:
            raise ValueError(f"Invalid period '{v}'. Must be one of: {SEARCH_PERIODS}")
        return v


class SearchItem(CamelModel):
    id: str
    title: str
    mime_type: str
    web_view_link: Optional[str] = None
    modified_time: Optional[str] = None
    snippet: str


class SearchResponse(CamelModel):
    items: List[SearchItem] = Field(default_factory=list)
    has_more: bool = False


# ══════════════════════════════════════════════════════════════════════════
# Export
# ══════════════════════════════════════════════════════════════════════════


class ExportOptions(CamelModel):
    """
    Layout options for the exported PDF.

    Unknown fonts fall back to the default (Noto Sans JP), like an
    unrecognised choice in the editor's font menu.
    """
    title: str = Field(default="TextStation出力ドキュメント", min_length=1, max_length=200)
    font: str = Field(default="noto")
    font_size: int = Field(default=11, ge=6, le=36)
    include_header: bool = True
    include_footer: bool = True


class ExportRequest(CamelModel):
    text: Optional[str] = None
    results: Optional[str] = Field(default=None, description="Analysis summary printed after the text")
    options: Optional[ExportOptions] = None


class ExportResponse(CamelModel):
    success: bool = True
    title: str
    url: str = Field(description="Signed download URL of the stored PDF")
    expires_at: Optional[int] = Field(default=None, description="Epoch ms after which url is refused")
    drive_url: Optional[str] = Field(default=None, description="Drive backup link, null if the backup failed")
