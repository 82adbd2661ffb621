"""In-memory registry of open editing sessions."""

import hashlib
import re
import uuid

from .config import MAX_UPLOAD_SIZE
from .session import EditSession

_DOC_ID_RE = re.compile(r"^[0-9a-f]{16}$")

_sessions: dict[str, EditSession] = {}


def _validate_doc_id(doc_id: str) -> None:
    """Reject any doc_id that isn't exactly 16 hex chars."""
    if not _DOC_ID_RE.match(doc_id):
        raise ValueError(f"Invalid document id: {doc_id}")


def create_session(content: bytes, filename: str) -> tuple[str, EditSession]:
    """Open uploaded PDF bytes in a new session, return (doc_id, session)."""
    if len(content) > MAX_UPLOAD_SIZE:
        raise ValueError(f"File too large ({len(content)} bytes, max {MAX_UPLOAD_SIZE})")
    session = EditSession()
    session.load(content, filename)
    # Hash + random suffix so re-uploading the same PDF opens a separate session
    content_hash = hashlib.sha256(content).hexdigest()[:12]
    doc_id = content_hash + uuid.uuid4().hex[:4]
    _sessions[doc_id] = session
    return doc_id, session


def get_session(doc_id: str) -> EditSession:
    _validate_doc_id(doc_id)
    session = _sessions.get(doc_id)
    if session is None:
        raise FileNotFoundError(f"Document {doc_id} not found")
    return session


def drop_session(doc_id: str) -> bool:
    _validate_doc_id(doc_id)
    return _sessions.pop(doc_id, None) is not None
