from __future__ import annotations

import io
import re

import structlog
from docx import Document
from pypdf import PdfReader

logger = structlog.get_logger()

MAX_PDF_PAGES = 50
SUPPORTED_EXTENSIONS = (".txt", ".md", ".pdf", ".docx")


class ExtractionError(Exception):
    """Raised when a document cannot be turned into text."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def _tidy(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def extract_text_from_pdf(content: bytes, max_pages: int = MAX_PDF_PAGES) -> str:
    try:
        reader = PdfReader(io.BytesIO(content))
    except Exception as e:
        raise ExtractionError(f"Invalid PDF file: {e}")
    if reader.is_encrypted:
        raise ExtractionError(
            "This PDF is password protected. Please provide an unlocked PDF or copy-paste the content."
        )
    parts = []
    for page in reader.pages[:max_pages]:
        parts.append(page.extract_text() or "")
    return "\n\n".join(p for p in parts if p.strip())


def extract_text_from_docx(content: bytes) -> str:
    try:
        document = Document(io.BytesIO(content))
    except Exception as e:
        raise ExtractionError(f"Failed to process Word document: {e}")
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def extract_text(filename: str, content: bytes) -> str:
    """Extract readable text from an uploaded TXT, PDF or DOCX file."""
    name = (filename or "").lower()
    if not name.endswith(SUPPORTED_EXTENSIONS):
        raise ExtractionError("Unsupported file type. Please upload TXT, PDF, or DOCX files.")
    if not content:
        raise ExtractionError("The uploaded file is empty.")

    if name.endswith(".pdf"):
        text = extract_text_from_pdf(content)
    elif name.endswith(".docx"):
        text = extract_text_from_docx(content)
    else:
        text = content.decode("utf-8", errors="ignore")

    text = _tidy(text)
    if not text:
        raise ExtractionError(
            "No readable text found in the file. It may contain only images or be scanned content."
        )
    logger.info("text_extracted", filename=filename, chars=len(text))
    return text
