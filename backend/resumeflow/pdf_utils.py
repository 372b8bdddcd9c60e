import logging

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
WORD_MIME_TYPES = (
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)
ALLOWED_FILE_TYPES = (PDF_MIME_TYPE, *WORD_MIME_TYPES)

MAX_CONTENT_LENGTH = 50_000
TRUNCATION_MARKER = "\n\n[Content truncated due to length]"


class PDFParseError(Exception):
    pass


class UnsupportedFileTypeError(Exception):
    pass


class EmptyDocumentError(Exception):
    pass


def _page_text(page: "fitz.Page") -> str:
    runs = []
    for block in page.get_text("dict").get("blocks", []):
        # image blocks carry no lines
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                if span.get("text"):
                    runs.append(span["text"])
    return " ".join(runs)


def extract_text_from_pdf_bytes(pdf_bytes: bytes) -> str:
    """Extract readable text from a PDF file, one line break between pages."""
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            pages = [_page_text(page) for page in doc]
    except Exception as e:
        logger.error(f"PDF extraction error: {e}")
        raise PDFParseError("Failed to parse PDF file. Please ensure it's a valid PDF.") from e
    return "\n".join(pages).strip()


def word_placeholder(file_name: str, job_title: str, industry: str) -> str:
    return (
        f"Word document: {file_name}\n"
        f"Target Role: {job_title}\n"
        f"Industry: {industry}\n\n"
        "Note: Word document text extraction is not yet implemented. "
        "Please upload a PDF file for full analysis."
    )


def truncate_content(text: str, limit: int = MAX_CONTENT_LENGTH) -> str:
    if len(text) <= limit:
        return text
    logger.info(f"Resume content is {len(text)} characters, truncating to {limit}")
    return text[:limit] + TRUNCATION_MARKER


def extract_resume_text(
    file_bytes: bytes,
    file_type: str,
    file_name: str,
    job_title: str,
    industry: str,
) -> str:
    if file_type == PDF_MIME_TYPE:
        text = extract_text_from_pdf_bytes(file_bytes)
        logger.info(f"Extracted {len(text)} characters from {file_name}")
    elif file_type in WORD_MIME_TYPES:
        logger.info(f"Word document {file_name} detected, text extraction not implemented")
        text = word_placeholder(file_name, job_title, industry)
    else:
        raise UnsupportedFileTypeError("Unsupported file type for text extraction")

    if not text.strip():
        raise EmptyDocumentError(
            "No text content could be extracted from the file. "
            "The file may be corrupted or contain only images."
        )
    return truncate_content(text)
