"""Pydantic request and response models for the API."""

from pydantic import BaseModel


class UploadResponse(BaseModel):
    doc_id: str
    page_count: int
    page_num: int


class DocumentState(BaseModel):
    doc_id: str
    filename: str
    page_count: int
    page_num: int
    can_undo: bool
    can_redo: bool


class PageTextResponse(BaseModel):
    page_num: int
    strings: list[str]  # operands of Tj instructions, in stream order


class ReplaceRequest(BaseModel):
    find_text: str
    replace_text: str = ""


class ReplaceResponse(BaseModel):
    match_count: int
    page_num: int
    found: bool


class HistoryResponse(DocumentState):
    changed: bool
