import io

import pytest
from conftest import docx_bytes
from docx import Document
from PIL import Image

import document_reader
from document_reader import DOCX_MIME, PDF_MIME, detect_mime_type, read_document
from errors import UnsupportedFileType


class FakePage:
    def __init__(self, words):
        self.words = words

    def extract_words(self):
        return [{"text": w} for w in self.words]


class FakePdf:
    def __init__(self, pages):
        self.pages = pages

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), "white").save(buf, format="PNG")
    return buf.getvalue()


def test_pdf_pages_in_order(monkeypatch):
    pages = [FakePage(["Roll", "No", "Name"]), FakePage(["24KP1A0401", "Asha"])]
    monkeypatch.setattr(document_reader.pdfplumber, "open", lambda fp: FakePdf(pages))

    doc = read_document(b"%PDF-1.4", "roster.pdf", "application/pdf")
    assert doc.mime_type == PDF_MIME
    assert doc.text == "Roll No Name\n24KP1A0401 Asha"
    assert not doc.is_image


def test_docx_paragraphs_and_tables():
    d = Document()
    d.add_paragraph("ECE Year 1 Section A")
    table = d.add_table(rows=2, cols=2)
    table.cell(0, 0).text, table.cell(0, 1).text = "Name", "Roll"
    table.cell(1, 0).text, table.cell(1, 1).text = "Asha", "24KP1A0401"
    buf = io.BytesIO()
    d.save(buf)

    doc = read_document(buf.getvalue(), "roster.docx")
    assert doc.mime_type == DOCX_MIME
    assert doc.text.splitlines() == ["ECE Year 1 Section A", "Name\tRoll", "Asha\t24KP1A0401"]


def test_docx_detected_by_extension_with_generic_mime():
    doc = read_document(docx_bytes("hello"), "roster.docx", "application/octet-stream")
    assert doc.text == "hello"


def test_image_bytes_pass_through_for_attendance():
    data = png_bytes()
    doc = read_document(data, "sheet.png", "image/png", allow_images=True)
    assert doc.is_image
    assert doc.image_bytes == data
    assert doc.text is None


def test_image_rejected_for_roster():
    with pytest.raises(UnsupportedFileType):
        read_document(png_bytes(), "sheet.png", "image/png")


def test_unreadable_image_rejected():
    with pytest.raises(UnsupportedFileType):
        read_document(b"not an image", "sheet.jpg", "image/jpeg", allow_images=True)


@pytest.mark.parametrize("name, mime", [("roster.xlsx", ""), ("notes.txt", "text/plain")])
def test_other_types_rejected(name, mime):
    with pytest.raises(UnsupportedFileType):
        read_document(b"data", name, mime, allow_images=True)


def test_detect_mime_type_prefers_declared():
    assert detect_mime_type("x.pdf", "image/png") == "image/png"
    assert detect_mime_type("x.pdf", "") == PDF_MIME
