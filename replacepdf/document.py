"""PDF container access through PyMuPDF: load, read/write page content, save."""

import logging

import pymupdf

from .errors import ContainerError

logger = logging.getLogger(__name__)


def load_document(data: bytes) -> pymupdf.Document:
    """Open PDF bytes, rejecting anything PyMuPDF can't edit."""
    try:
        doc = pymupdf.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise ContainerError(f"Cannot open document: {exc}") from exc
    if not doc.is_pdf:
        doc.close()
        raise ContainerError("Not a PDF document")
    if doc.needs_pass:
        doc.close()
        raise ContainerError("Encrypted documents are not supported")
    return doc


def page_count(doc: pymupdf.Document) -> int:
    return len(doc)


def _page(doc: pymupdf.Document, page_index: int) -> pymupdf.Page:
    if page_index < 0 or page_index >= len(doc):
        raise IndexError(f"Page {page_index} out of range")
    return doc[page_index]


def get_content_stream_bytes(doc: pymupdf.Document, page_index: int) -> bytes:
    """Return the page's decoded content streams concatenated in order."""
    page = _page(doc, page_index)
    parts = [doc.xref_stream(xref) or b"" for xref in page.get_contents()]
    return b"\n".join(parts)


def set_content_stream_bytes(doc: pymupdf.Document, page_index: int, data: bytes) -> None:
    """Point the page at a new single stream holding *data*.

    Existing content streams may be shared with other pages, so they are
    never written to; a full save drops the ones left unreferenced.
    """
    page = _page(doc, page_index)
    xref = doc.get_new_xref()
    doc.update_object(xref, "<<>>")
    doc.update_stream(xref, data)
    page.set_contents(xref)


def serialize_document(doc: pymupdf.Document) -> bytes:
    """Full save with garbage collection; stale content streams are dropped."""
    try:
        return doc.tobytes(garbage=3, deflate=True)
    except (RuntimeError, ValueError) as exc:
        logger.error("Serializing document failed: %s", exc)
        raise ContainerError(f"Cannot save document: {exc}") from exc
