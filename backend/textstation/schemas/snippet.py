"""
TextStation Backend — Snippet Schemas
======================================

What:  Request and response models for the snippet endpoints.
Why:   List views only need titles and categories; the full content and
       variables are fetched when a snippet is opened.
"""

from typing import Any, List, Optional

from pydantic import Field

from textstation.schemas.common import CamelModel


class SnippetListItem(CamelModel):
    """Compact snippet representation for the snippet picker."""
    id: str
    title: str
    category: str
    created_at: Optional[int] = Field(default=None, description="Epoch milliseconds")


class SnippetListResponse(CamelModel):
    """
    Returned by POST /api/get-snippets.

    Both category lists start with the default category and then list every
    category in use, in first-seen order (newest snippet first).
    """
    personal: List[SnippetListItem] = Field(default_factory=list)
    shared: List[SnippetListItem] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    shared_categories: List[str] = Field(default_factory=list)


class SnippetResponse(CamelModel):
    """Full snippet, returned by POST /api/get-snippet."""
    id: str
    title: str
    category: str
    content: str
    variables: List[Any] = Field(default_factory=list)
    is_shared: bool = False
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class GetSnippetRequest(CamelModel):
    id: Optional[str] = None
    is_shared: Optional[bool] = Field(
        default=False,
        description="Must match the snippet's shared flag, otherwise 404",
    )


class SaveSnippetRequest(CamelModel):
    title: Optional[str] = None
    category: Optional[str] = None
    content: Optional[str] = None
    variables: Optional[List[Any]] = None


class UpdateSnippetRequest(SaveSnippetRequest):
    id: Optional[str] = None


class SaveSnippetResponse(CamelModel):
    success: bool = True
    id: str
