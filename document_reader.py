"""
document_reader.py
==================
Turns an uploaded roster / attendance document into something the
extraction model can read.

  • PDF   → text of every page, page order preserved, words space-joined
  • DOCX  → raw text (paragraphs, then table cells row by row)
  • image → the original bytes, untouched (the model does the OCR)

Anything else raises UnsupportedFileType before any model call is made.
"""

import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pdfplumber
from docx import Document
from PIL import Image, UnidentifiedImageError

from errors import UnsupportedFileType

logger = logging.getLogger(__name__)

PDF_MIME  = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

STUDENT_UPLOAD_TYPES    = ["pdf", "docx"]
ATTENDANCE_UPLOAD_TYPES = ["pdf", "docx", "jpg", "jpeg", "png", "webp", "bmp", "tif", "tiff"]


@dataclass
class DocumentContent:
    mime_type: str
    text: Optional[str] = None
    image_bytes: Optional[bytes] = None

    @property
    def is_image(self) -> bool:
        return self.image_bytes is not None

    def is_blank(self) -> bool:
        if self.is_image:
            return len(self.image_bytes) == 0
        return not (self.text or "").strip()


def detect_mime_type(file_name: str, declared: str = "") -> str:
    """Prefer the declared MIME type; fall back to the file extension."""
    declared = (declared or "").strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(file_name or "")
    if guessed:
        return guessed
    if Path(file_name or "").suffix.lower() == ".docx":
        return DOCX_MIME
    return declared


def _is_docx(file_name: str, mime_type: str) -> bool:
    return mime_type == DOCX_MIME or (file_name or "").lower().endswith(".docx")


# ══════════════════════════════════════════════════════════════════════════════
# Format readers
# ══════════════════════════════════════════════════════════════════════════════

def read_pdf_text(data: bytes) -> str:
    pages = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            words = page.extract_words() or []
            pages.append(" ".join(w["text"] for w in words))
        logger.info("Read %d PDF page(s)", len(pages))
    return "\n".join(pages)


def read_docx_text(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    lines = [p.text for p in doc.paragraphs if p.text.strip()]
    # Rosters are usually tables; keep one line per row
    for table in doc.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells]
            if any(cells):
                lines.append("\t".join(cells))
    return "\n".join(lines)


def _check_image(data: bytes) -> None:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError) as e:
        raise UnsupportedFileType("image", "unreadable image") from e


# ══════════════════════════════════════════════════════════════════════════════
# Public API
# ══════════════════════════════════════════════════════════════════════════════

def read_document(data: bytes, file_name: str = "", mime_type: str = "",
                  allow_images: bool = False) -> DocumentContent:
    """
    Auto-detect the document type and return its content.

    Raises UnsupportedFileType for anything that is not PDF, DOCX or
    (when allow_images) an image.
    """
    mime = detect_mime_type(file_name, mime_type)
    logger.info("Reading %s (%s, %.1f KB)", file_name or "upload", mime or "?", len(data) / 1024)

    if mime == PDF_MIME:
        return DocumentContent(PDF_MIME, text=read_pdf_text(data))
    if _is_docx(file_name, mime):
        return DocumentContent(DOCX_MIME, text=read_docx_text(data))
    if allow_images and mime.startswith("image/"):
        _check_image(data)
        return DocumentContent(mime, image_bytes=data)

    raise UnsupportedFileType(mime, file_name)
