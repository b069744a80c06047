"""
TextStation Backend — PDF Export Service
=========================================

What:  Renders the editor text (and optionally its analysis summary) to PDF,
       stores it for download and backs it up to Google Drive.
Who:   Called by POST /api/export-pdf.

Flow:
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────────┐
    │ Options  │───▶│ render_pdf  │───▶│ FileService  │───▶│ DriveService │
    │ defaults │    │ (fpdf2, in  │    │ exports/     │    │ upload_pdf   │
    └──────────┘    │  a thread)  │    │ <title>.pdf  │    │ (optional)   │
                    └─────────────┘    └──────────────┘    └──────────────┘
    Render failure → ExportError (500); storage failure → FileStorageError
    (500); Drive failure → driveUrl null, the export still succeeds.
    The returned url carries a download token valid for DOWNLOAD_URL_TTL.

Page layout (A4, 50pt margins):
    <title>                      centered, fontSize + 2   ┐ includeHeader
    作成日: 2024/5/1              centered, fontSize - 2   │
    ──────────────────────────                            ┘
    【テキスト】 (underlined)
    <text>
    【分析結果】 (underlined)      only when results are non-blank
    <results>
    ──────────────────────────                            ┐ includeFooter,
    ページ i / N                  centered, fontSize - 2   ┘ every page

Fonts:
    Japanese text needs a TrueType font from settings.font_dir. A missing
    font file falls back to Noto Sans JP, and a missing Noto file to the
    built-in Helvetica, with characters Latin-1 cannot encode replaced by
    "?". The font files are not shipped; put them in FONT_DIR.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from textstation.config import settings
from textstation.exceptions import ExportError
from textstation.schemas.drive import ExportOptions, ExportResponse
from textstation.services.drive_service import DriveService, drive_service
from textstation.services.file_service import FileService, file_service

logger = logging.getLogger(__name__)

FONT_FILES = {
    "noto": "NotoSansJP-Regular.ttf",
    "meiryo": "meiryo.ttf",
    "gothic": "msgothic.ttf",
    "mincho": "msmincho.ttf",
}
DEFAULT_FONT = "noto"
FALLBACK_CORE_FONT = "Helvetica"

PAGE_MARGIN = 50
LINE_SPACING = 1.5

TEXT_HEADING = "【テキスト】"
RESULTS_HEADING = "【分析結果】"
AUTHOR = "TextStation Pro"


def resolve_font_path(font: str, font_dir: Optional[str] = None) -> Optional[Path]:
    """Path of the TTF for a font choice, or None if neither it nor Noto exists."""
    base = Path(font_dir or settings.font_dir)
    candidates = [FONT_FILES.get(font, FONT_FILES[DEFAULT_FONT]), FONT_FILES[DEFAULT_FONT]]
    for name in candidates:
        path = base / name
        if path.is_file():
            return path
    return None


def _safe_text(text: str, pdf: FPDF) -> str:
    """Ensure text is encodable by the current font. Replace if needed."""
    if pdf.is_ttf_font:
        return text
    return text.encode("latin-1", errors="replace").decode("latin-1")


class _ExportPDF(FPDF):
    """FPDF with the page-number footer drawn on every page."""

    def __init__(self, font_family: str, font_size: int, include_footer: bool):
        super().__init__(orientation="P", unit="pt", format="A4")
        self.body_font = font_family
        self.body_size = font_size
        self.include_footer = include_footer

    def footer(self) -> None:
        if not self.include_footer:
            return
        y = self.h - PAGE_MARGIN
        self.line(PAGE_MARGIN, y, self.w - PAGE_MARGIN, y)
        self.set_font(self.body_font, size=max(self.body_size - 2, 1))
        self.set_xy(PAGE_MARGIN, self.h - 40)
        label = _safe_text(f"ページ {self.page_no()} / {{nb}}", self)
        self.cell(self.w - 2 * PAGE_MARGIN, self.body_size, label, align="C")


def render_pdf(
    text: str,
    results: Optional[str],
    options: ExportOptions,
    font_dir: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bytes:
    """
    Render the export document. Synchronous and CPU-bound; call it through
    asyncio.to_thread from async code.
    """
    font_path = resolve_font_path(options.font, font_dir)
    font_family = "TextStationFont" if font_path else FALLBACK_CORE_FONT
    if font_path is None:
        logger.warning(
            "No TrueType font found in %s, falling back to %s",
            font_dir or settings.font_dir,
            FALLBACK_CORE_FONT,
        )

    size = options.font_size
    line_height = size * LINE_SPACING

    pdf = _ExportPDF(font_family, size, options.include_footer)
    if font_path:
        pdf.add_font(font_family, "", fname=str(font_path))
    pdf.set_title(options.title)
    pdf.set_author(AUTHOR)
    pdf.set_creator(AUTHOR)
    pdf.set_margins(PAGE_MARGIN, PAGE_MARGIN, PAGE_MARGIN)
    pdf.set_auto_page_break(auto=True, margin=PAGE_MARGIN + size * 2)
    pdf.alias_nb_pages()
    pdf.add_page()

    def write_block(content: str, block_size: int, align: str = "L", style: str = "") -> None:
        pdf.set_font(font_family, style=style, size=block_size)
        pdf.multi_cell(
            0,
            block_size * LINE_SPACING,
            _safe_text(content, pdf),
            align=align,
            new_x=XPos.LMARGIN,
            new_y=YPos.NEXT,
        )

    if options.include_header:
        created = now or datetime.now()
        write_block(options.title, size + 2, align="C")
        pdf.ln(line_height * 0.5)
        write_block(f"作成日: {created.year}/{created.month}/{created.day}", max(size - 2, 1), align="C")
        pdf.ln(line_height * 2)
        pdf.line(PAGE_MARGIN, pdf.get_y(), pdf.w - PAGE_MARGIN, pdf.get_y())
        pdf.ln(line_height)

    write_block(TEXT_HEADING, size, style="U")
    pdf.ln(line_height * 0.5)
    write_block(text, size)
    pdf.ln(line_height * 2)

    if results and results.strip():
        write_block(RESULTS_HEADING, size, style="U")
        pdf.ln(line_height * 0.5)
        write_block(results, size)

    return bytes(pdf.output())


class ExportService:
    """Coordinates rendering, storage and the Drive backup of an export."""

    def __init__(
        self,
        storage: Optional[FileService] = None,
        drive: Optional[DriveService] = None,
    ):
        self.storage = storage or file_service
        self.drive = drive or drive_service

    async def generate_pdf(
        self,
        text: str,
        results: Optional[str] = None,
        options: Optional[ExportOptions] = None,
    ) -> ExportResponse:
        """
        Export text as PDF.

        Raises:
            ExportError: Rendering failed.
            FileStorageError: The PDF could not be stored.
        """
        options = options or ExportOptions()

        try:
            content = await asyncio.to_thread(render_pdf, text, results, options)
        except Exception as e:
            logger.error("PDF rendering failed: %s", str(e), exc_info=True)
            raise ExportError(
                message=f"PDF generation failed: {e}",
                context={"title": options.title, "error_type": type(e).__name__},
            )

        filename = f"{options.title}.pdf"
        _, relative_path = await self.storage.store_export(content, filename)
        token, expires_at = self.storage.sign_download(relative_path)

        backup = await self.drive.upload_pdf(content, filename)
        if not backup.uploaded:
            logger.warning("Export %s stored without Drive backup: %s", relative_path, backup.error)

        logger.info("PDF exported: %s (%d bytes)", relative_path, len(content))
        return ExportResponse(
            success=True,
            title=options.title,
            url=f"/api/files/{quote(relative_path)}?token={token}",
            expires_at=int(expires_at.timestamp() * 1000),
            drive_url=backup.url,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
export_service = ExportService()
