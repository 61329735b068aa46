"""
Content schemas.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from src.content.models import ContentDocument, DocumentStatus, SafetyLevel, Visibility


class SlugListResponse(BaseModel):
    items: List[str]
    total: int


class DocumentResponse(BaseModel):
    path: str
    branch: str
    document: ContentDocument


class UpdateCreate(BaseModel):
    """New update written to the draft branch."""

    title: str = Field(..., min_length=1, max_length=200)
    category: str
    summary: str = ""
    tags: List[str] = Field(default_factory=list)
    status: DocumentStatus = DocumentStatus.DRAFT
    body: Optional[str] = None


class DocumentWriteResponse(BaseModel):
    path: str
    branch: str
    commit_sha: str
    commit_url: Optional[str] = None
    document: ContentDocument


class DocumentEdit(BaseModel):
    """Partial edit of an existing document; only the fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    summary: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[DocumentStatus] = None
    visibility: Optional[Visibility] = None
    safety_level: Optional[SafetyLevel] = None
    safety_code: Optional[str] = None
    body: Optional[str] = None
