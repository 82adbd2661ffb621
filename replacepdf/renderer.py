"""Page rasterization."""

import pymupdf

from .config import DEFAULT_RENDER_SCALE


def render_page(doc: pymupdf.Document, page_index: int, scale: float = DEFAULT_RENDER_SCALE) -> bytes:
    """Render a page as PNG bytes."""
    if page_index < 0 or page_index >= len(doc):
        raise IndexError(f"Page {page_index} out of range")
    page = doc[page_index]
    mat = pymupdf.Matrix(scale, scale)
    pix = page.get_pixmap(matrix=mat)
    return pix.tobytes("png")
