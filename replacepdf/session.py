"""Per-document editing session: page navigation, rendering and find-and-replace."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from functools import partial

from .config import DEFAULT_RENDER_SCALE, STREAM_ENCODING
from .document import (
    get_content_stream_bytes,
    load_document,
    page_count,
    serialize_document,
    set_content_stream_bytes,
)
from .errors import ContainerError, InputError
from .history import History
from .renderer import render_page
from .scheduler import RenderScheduler
from .stream_editor import replace_in_stream, text_shows, tokenize

logger = logging.getLogger(__name__)


# MuPDF keeps global state; only one thread may drive it at a time
_mupdf_lock = threading.RLock()


def _locked(fn, *args, **kwargs):
    with _mupdf_lock:
        return fn(*args, **kwargs)


async def run_sync(fn, *args, **kwargs):
    """Run a blocking PyMuPDF call in a thread so it doesn't stall the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(_locked, fn, *args, **kwargs))


def _close_all(docs) -> None:
    for doc in docs:
        doc.close()


@dataclass(frozen=True)
class ReplaceResult:
    match_count: int
    page_num: int

    @property
    def found(self) -> bool:
        return self.match_count > 0


def replace_text_on_page(
    pdf_bytes: bytes, page_index: int, find_text: str, replace_text: str
) -> tuple[bytes, int]:
    """Replace ``(find_text) Tj`` instructions on one page of a serialized PDF.

    Works on a fresh document handle so the caller's bytes stay untouched on
    any failure.  Returns ``(new_pdf_bytes, match_count)``; with no match the
    input bytes are returned unchanged.
    """
    doc = load_document(pdf_bytes)
    try:
        raw = get_content_stream_bytes(doc, page_index)
        new_stream, count = replace_in_stream(raw, find_text, replace_text)
        if count == 0:
            return pdf_bytes, 0
        set_content_stream_bytes(doc, page_index, new_stream)
        return serialize_document(doc), count
    finally:
        doc.close()


def page_text_shows(pdf_bytes: bytes, page_index: int) -> list[str]:
    """Strings drawn by ``Tj`` on a page, i.e. the text that can be replaced."""
    doc = load_document(pdf_bytes)
    try:
        return text_shows(tokenize(get_content_stream_bytes(doc, page_index)))
    finally:
        doc.close()


class EditSession:
    """State for one open document.

    ``pdf_bytes`` is the authoritative document; ``viewer`` is a PyMuPDF
    handle opened from those bytes and used only for rendering.  Page numbers
    are 1-based.
    """

    def __init__(self, scale: float = DEFAULT_RENDER_SCALE):
        self.scale = scale
        self.pdf_bytes: bytes | None = None
        self.filename: str | None = None
        self.viewer = None
        self.page_count = 0
        self.page_num = 0
        self.image: bytes | None = None
        self.rendered_page: int | None = None
        self.history = History()
        self.scheduler = RenderScheduler(self._render)
        self._edit_lock = asyncio.Lock()
        self._retired: list = []

    @property
    def loaded(self) -> bool:
        return self.pdf_bytes is not None

    def _require_document(self) -> None:
        if not self.loaded:
            raise InputError("Please load a PDF first")

    def _install(self, pdf_bytes: bytes, viewer):
        """Make *viewer* current and return the handle it replaces."""
        old = self.viewer
        self.viewer = viewer
        self.pdf_bytes = pdf_bytes
        self.page_count = page_count(viewer)
        return old

    async def _swap(self, pdf_bytes: bytes) -> None:
        viewer = await run_sync(load_document, pdf_bytes)
        old = self._install(pdf_bytes, viewer)
        if old is None:
            return
        if self.scheduler.busy:
            # The in-flight render may still be reading it; closed once that render ends
            self._retired.append(old)
        else:
            await run_sync(old.close)

    def load(self, pdf_bytes: bytes, filename: str = "document.pdf") -> int:
        """Open a new document and reset to page 1. Returns the page count."""
        viewer = load_document(pdf_bytes)
        if page_count(viewer) == 0:
            viewer.close()
            raise ContainerError("Document has no pages")
        old = self._install(pdf_bytes, viewer)
        if old is not None:
            old.close()
        self.filename = filename
        self.page_num = 1
        self.image = None
        self.rendered_page = None
        self.history.clear()
        logger.info("Loaded %s (%d pages)", filename, self.page_count)
        return self.page_count

    async def _render(self, page_num: int) -> None:
        try:
            png = await run_sync(render_page, self.viewer, page_num - 1, self.scale)
        finally:
            if self._retired:
                retired, self._retired = self._retired, []
                await run_sync(_close_all, retired)
        self.image = png
        self.rendered_page = page_num

    def show_page(self, page_num: int) -> None:
        self._require_document()
        if page_num < 1 or page_num > self.page_count:
            raise IndexError(f"Page {page_num} out of range")
        self.page_num = page_num
        self.scheduler.request_render(page_num)

    def next_page(self) -> bool:
        self._require_document()
        if self.page_num >= self.page_count:
            return False
        self.show_page(self.page_num + 1)
        return True

    def prev_page(self) -> bool:
        self._require_document()
        if self.page_num <= 1:
            return False
        self.show_page(self.page_num - 1)
        return True

    async def current_image(self) -> bytes:
        """PNG of the current page once all queued renders have drained."""
        self._require_document()
        if self.rendered_page != self.page_num and not self.scheduler.busy:
            self.scheduler.request_render(self.page_num)
        await self.scheduler.wait_idle()
        return self.image

    async def text_on_page(self) -> list[str]:
        self._require_document()
        return await run_sync(page_text_shows, self.pdf_bytes, self.page_num - 1)

    async def find_and_replace(self, find_text: str, replace_text: str) -> ReplaceResult:
        """Replace exact ``Tj`` strings on the current page and redisplay it.

        A zero ``match_count`` leaves the document untouched.  Tokenizer and
        container failures propagate with the document unchanged.
        """
        self._require_document()
        if not find_text:
            raise InputError("Please enter text to find")
        try:
            replace_text.encode(STREAM_ENCODING)
        except UnicodeEncodeError as exc:
            raise InputError(f"Replacement text cannot be encoded in {STREAM_ENCODING}") from exc

        async with self._edit_lock:
            page_num = self.page_num
            source = self.pdf_bytes
            new_bytes, count = await run_sync(
                replace_text_on_page, source, page_num - 1, find_text, replace_text
            )
            logger.info("Replaced %d instruction(s) on page %d", count, page_num)
            if count:
                self.history.snapshot(source)
                await self._swap(new_bytes)
                self.scheduler.request_render(self.page_num)
        return ReplaceResult(count, page_num)

    async def undo(self) -> bool:
        self._require_document()
        async with self._edit_lock:
            previous = self.history.undo(self.pdf_bytes)
            if previous is None:
                return False
            await self._swap(previous)
            self.scheduler.request_render(self.page_num)
            return True

    async def redo(self) -> bool:
        self._require_document()
        async with self._edit_lock:
            following = self.history.redo(self.pdf_bytes)
            if following is None:
                return False
            await self._swap(following)
            self.scheduler.request_render(self.page_num)
            return True
