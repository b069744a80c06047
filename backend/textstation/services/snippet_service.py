"""
TextStation Backend — Snippet Service
======================================

What:  CRUD for reusable text snippets (boilerplate paragraphs with
       placeholder variables).
Who:   Called by routes/snippets.py.

Personal vs. shared:
    Snippets created through the API are always personal. Shared snippets
    are provisioned directly in the database by an administrator; the API
    can read them but never deletes them.

    get_snippet() requires the caller to state which list the snippet came
    from. A personal ID requested as shared (or the reverse) is reported as
    not found, so the two lists cannot be read through each other.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from textstation.database import now_ms
from textstation.exceptions import DatabaseError, NotFoundError, PermissionDeniedError
from textstation.models.snippet import DEFAULT_CATEGORY, Snippet
from textstation.schemas.snippet import (
    SnippetListItem,
    SnippetListResponse,
    SnippetResponse,
)

logger = logging.getLogger(__name__)


def _parse_id(snippet_id: str) -> uuid.UUID:
    # IDs that are not UUIDs cannot exist in the table
    try:
        return uuid.UUID(str(snippet_id))
    except ValueError:
        raise NotFoundError(resource="snippet", resource_id=str(snippet_id))


class SnippetService:
    """Business logic for the snippet endpoints. Stateless."""

    async def list_snippets(self, db: AsyncSession) -> SnippetListResponse:
        """
        Return both snippet lists, newest first, with their category menus.

        Each category menu starts with the default category, followed by
        every category in use in first-seen order.
        """
        try:
            result = await db.execute(select(Snippet).order_by(desc(Snippet.created_at)))
            snippets = list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing snippets: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve snippets. Please try again.",
                context={"error_type": type(e).__name__},
            )

        personal: List[SnippetListItem] = []
        shared: List[SnippetListItem] = []
        categories: Dict[str, None] = {DEFAULT_CATEGORY: None}
        shared_categories: Dict[str, None] = {DEFAULT_CATEGORY: None}

        for snippet in snippets:
            item = SnippetListItem(
                id=str(snippet.id),
                title=snippet.title,
                category=snippet.category or DEFAULT_CATEGORY,
                created_at=snippet.created_at,
            )
            if snippet.is_shared:
                shared.append(item)
                if snippet.category:
                    shared_categories[snippet.category] = None
            else:
                personal.append(item)
                if snippet.category:
                    categories[snippet.category] = None

        return SnippetListResponse(
            personal=personal,
            shared=shared,
            categories=list(categories),
            shared_categories=list(shared_categories),
        )

    async def get_snippet(
        self,
        db: AsyncSession,
        snippet_id: str,
        is_shared: bool = False,
    ) -> SnippetResponse:
        """
        Fetch one snippet.

        Raises:
            NotFoundError: Unknown ID, or the shared flag does not match.
            DatabaseError: Query failed.
        """
        snippet = await self._load(db, snippet_id)
        if snippet.is_shared != bool(is_shared):
            raise NotFoundError(resource="snippet", resource_id=str(snippet_id))

        return SnippetResponse(
            id=str(snippet.id),
            title=snippet.title,
            category=snippet.category or DEFAULT_CATEGORY,
            content=snippet.content,
            variables=snippet.variables or [],
            is_shared=snippet.is_shared,
            created_at=snippet.created_at,
            updated_at=snippet.updated_at,
        )

    async def save_snippet(
        self,
        db: AsyncSession,
        title: str,
        content: str,
        category: Optional[str] = None,
        variables: Optional[List[Any]] = None,
    ) -> str:
        """Create a personal snippet and return its ID."""
        now = now_ms()
        snippet = Snippet(
            id=uuid.uuid4(),
            title=title,
            category=category or DEFAULT_CATEGORY,
            content=content,
            variables=variables or [],
            is_shared=False,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(snippet)
            await db.flush()
        except Exception as e:
            logger.error("Database error saving snippet: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the snippet. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Snippet created: %s", snippet.id)
        return str(snippet.id)

    async def update_snippet(
        self,
        db: AsyncSession,
        snippet_id: str,
        title: Optional[str] = None,
        category: Optional[str] = None,
        content: Optional[str] = None,
        variables: Optional[List[Any]] = None,
    ) -> None:
        """
        Merge the given fields into an existing snippet.

        Fields passed as None keep their stored value.
        """
        snippet = await self._load(db, snippet_id)

        if title is not None:
            snippet.title = title
        if category is not None:
            snippet.category = category
        if content is not None:
            snippet.content = content
        if variables is not None:
            snippet.variables = variables
        snippet.updated_at = now_ms()

        try:
            await db.flush()
        except Exception as e:
            logger.error("Database error updating snippet %s: %s", snippet_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the snippet. Please try again.",
                context={"snippet_id": str(snippet_id)},
            )
        logger.info("Snippet updated: %s", snippet_id)

    async def delete_snippet(self, db: AsyncSession, snippet_id: str) -> None:
        """
        Delete a personal snippet.

        Raises:
            NotFoundError: Unknown ID.
            PermissionDeniedError: The snippet is shared.
        """
        snippet = await self._load(db, snippet_id)
        if snippet.is_shared:
            raise PermissionDeniedError(
                message="Shared snippets cannot be deleted",
                context={"snippet_id": str(snippet_id)},
            )

        try:
            await db.delete(snippet)
            await db.flush()
        except Exception as e:
            logger.error("Database error deleting snippet %s: %s", snippet_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the snippet. Please try again.",
                context={"snippet_id": str(snippet_id)},
            )
        logger.info("Snippet deleted: %s", snippet_id)

    async def _load(self, db: AsyncSession, snippet_id: str) -> Snippet:
        key = _parse_id(snippet_id)
        try:
            result = await db.execute(select(Snippet).where(Snippet.id == key))
            snippet = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error fetching snippet %s: %s", snippet_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the snippet. Please try again.",
                context={"snippet_id": str(snippet_id)},
            )

        if snippet is None:
            raise NotFoundError(resource="snippet", resource_id=str(snippet_id))
        return snippet


# ── Singleton Instance ────────────────────────────────────────────────────
snippet_service = SnippetService()
