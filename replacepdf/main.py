import logging

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from .config import FRONTEND_DIR, MAX_UPLOAD_SIZE, configure_logging
from .errors import ContainerError, InputError, MalformedStreamError
from .models import (
    DocumentState,
    HistoryResponse,
    PageTextResponse,
    ReplaceRequest,
    ReplaceResponse,
    UploadResponse,
)
from .session import EditSession, run_sync
from .store import create_session, drop_session, get_session

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="ReplacePDF")


def _lookup(doc_id: str) -> EditSession:
    try:
        return get_session(doc_id)
    except ValueError:
        raise HTTPException(400, "Invalid document id")
    except FileNotFoundError:
        raise HTTPException(404, "Document not found")


def _state(doc_id: str, session: EditSession) -> DocumentState:
    return DocumentState(
        doc_id=doc_id,
        filename=session.filename or "",
        page_count=session.page_count,
        page_num=session.page_num,
        can_undo=session.history.can_undo,
        can_redo=session.history.can_redo,
    )


@app.post("/api/upload", response_model=UploadResponse)
async def upload_pdf(file: UploadFile = File(...)):
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(400, "Only PDF files are accepted")
    content = await file.read()
    if len(content) == 0:
        raise HTTPException(400, "Empty file")
    if len(content) > MAX_UPLOAD_SIZE:
        raise HTTPException(400, f"File too large (max {MAX_UPLOAD_SIZE // 1024 // 1024} MB)")
    try:
        doc_id, session = await run_sync(create_session, content, file.filename)
    except ContainerError as e:
        raise HTTPException(400, f"Invalid PDF: {e}")
    except ValueError as e:
        raise HTTPException(400, str(e))
    session.show_page(1)
    return UploadResponse(doc_id=doc_id, page_count=session.page_count, page_num=session.page_num)


@app.get("/api/documents/{doc_id}", response_model=DocumentState)
async def get_document(doc_id: str):
    return _state(doc_id, _lookup(doc_id))


@app.post("/api/documents/{doc_id}/pages/next", response_model=DocumentState)
async def next_page(doc_id: str):
    session = _lookup(doc_id)
    session.next_page()
    return _state(doc_id, session)


@app.post("/api/documents/{doc_id}/pages/prev", response_model=DocumentState)
async def prev_page(doc_id: str):
    session = _lookup(doc_id)
    session.prev_page()
    return _state(doc_id, session)


@app.post("/api/documents/{doc_id}/pages/{page_num}", response_model=DocumentState)
async def show_page(doc_id: str, page_num: int):
    session = _lookup(doc_id)
    try:
        session.show_page(page_num)
    except IndexError as e:
        raise HTTPException(404, str(e))
    return _state(doc_id, session)


@app.get("/api/documents/{doc_id}/image")
async def get_page_image(doc_id: str):
    session = _lookup(doc_id)
    try:
        png = await session.current_image()
    except IndexError as e:
        raise HTTPException(404, str(e))
    return Response(content=png, media_type="image/png")


@app.get("/api/documents/{doc_id}/text", response_model=PageTextResponse)
async def get_page_text(doc_id: str):
    session = _lookup(doc_id)
    try:
        strings = await session.text_on_page()
    except MalformedStreamError as e:
        raise HTTPException(422, str(e))
    return PageTextResponse(page_num=session.page_num, strings=strings)


@app.post("/api/documents/{doc_id}/replace", response_model=ReplaceResponse)
async def replace_text(doc_id: str, req: ReplaceRequest):
    session = _lookup(doc_id)
    try:
        result = await session.find_and_replace(req.find_text, req.replace_text)
    except InputError as e:
        raise HTTPException(400, str(e))
    except MalformedStreamError as e:
        raise HTTPException(422, str(e))
    except ContainerError as e:
        logger.error("Replace on %s failed: %s", doc_id, e)
        raise HTTPException(500, str(e))
    return ReplaceResponse(match_count=result.match_count, page_num=result.page_num, found=result.found)


@app.post("/api/documents/{doc_id}/undo", response_model=HistoryResponse)
async def undo_edit(doc_id: str):
    session = _lookup(doc_id)
    changed = await session.undo()
    return HistoryResponse(changed=changed, **_state(doc_id, session).model_dump())


@app.post("/api/documents/{doc_id}/redo", response_model=HistoryResponse)
async def redo_edit(doc_id: str):
    session = _lookup(doc_id)
    changed = await session.redo()
    return HistoryResponse(changed=changed, **_state(doc_id, session).model_dump())


@app.delete("/api/documents/{doc_id}")
async def close_document(doc_id: str):
    _lookup(doc_id)
    drop_session(doc_id)
    return {"status": "ok"}


@app.get("/api/documents/{doc_id}/download")
async def download_pdf(doc_id: str):
    session = _lookup(doc_id)
    return Response(
        content=session.pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={doc_id}.pdf"},
    )


# Serve frontend static files (must be last to not shadow API routes)
app.mount("/", StaticFiles(directory=FRONTEND_DIR, html=True), name="frontend")
