"""
Page Repository

Data access for page documents (users/{userId}/pages/{pageId}).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud.firestore import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import ValidationError as SchemaError

from memorizu.domain.page import Page
from memorizu.infrastructure.exceptions import DatabaseError, NotFoundError
from memorizu.infrastructure.firestore.user_repository import USERS_COLLECTION


logger = logging.getLogger(__name__)

PAGES_COLLECTION = "pages"


class PageRepository:
    """Repository for page documents."""

    def __init__(self, db: AsyncClient):
        self._db = db

    def _collection(self, user_id: str):
        return (
            self._db.collection(USERS_COLLECTION)
            .document(user_id)
            .collection(PAGES_COLLECTION)
        )

    def _ref(self, user_id: str, page_id: str):
        return self._collection(user_id).document(page_id)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get(self, user_id: str, page_id: str) -> Optional[Page]:
        """
        Get a page owned by a user.

        Args:
            user_id: Owner UID
            page_id: Page document ID

        Returns:
            Page or None when it does not exist under that user
        """
        try:
            snapshot = await self._ref(user_id, page_id).get()
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Failed to read page {user_id}/{page_id}: {e}")
            raise DatabaseError(
                "Failed to read page",
                operation="get",
                collection=PAGES_COLLECTION,
                original_error=e,
            )

        if not snapshot.exists:
            return None

        return self._to_domain(user_id, snapshot.id, snapshot.to_dict() or {})

    async def list_for_user(self, user_id: str) -> List[Page]:
        """Get all pages owned by a user."""
        pages: List[Page] = []
        try:
            async for snapshot in self._collection(user_id).stream():
                pages.append(self._to_domain(user_id, snapshot.id, snapshot.to_dict() or {}))
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Failed to list pages for {user_id}: {e}")
            raise DatabaseError(
                "Failed to list pages",
                operation="list",
                collection=PAGES_COLLECTION,
                original_error=e,
            )
        return pages

    async def count_for_user(self, user_id: str) -> int:
        """Count pages owned by a user (aggregation query)."""
        try:
            results = await self._collection(user_id).count().get()
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Failed to count pages for {user_id}: {e}")
            raise DatabaseError(
                "Failed to count pages",
                operation="count",
                collection=PAGES_COLLECTION,
                original_error=e,
            )
        return int(results[0][0].value) if results else 0

    async def find_by_custom_slug(self, slug: str) -> Optional[Page]:
        """Find the page using a custom slug, across all users."""
        query = (
            self._db.collection_group(PAGES_COLLECTION)
            .where(filter=FieldFilter("customSlug", "==", slug))
            .limit(1)
        )
        try:
            async for snapshot in query.stream():
                owner = snapshot.reference.parent.parent
                user_id = owner.id if owner is not None else None
                return self._to_domain(user_id, snapshot.id, snapshot.to_dict() or {})
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Failed to look up slug {slug}: {e}")
            raise DatabaseError(
                "Failed to look up slug",
                operation="query",
                collection=PAGES_COLLECTION,
                original_error=e,
            )
        return None

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def update(self, user_id: str, page_id: str, fields: Dict[str, Any]) -> None:
        """
        Update fields of an existing page.

        Raises:
            NotFoundError: the page document does not exist
        """
        data = {**fields, "updatedAt": datetime.now(timezone.utc)}
        try:
            await self._ref(user_id, page_id).update(data)
        except gcp_exceptions.NotFound as e:
            raise NotFoundError(
                "Page not found",
                operation="update",
                collection=PAGES_COLLECTION,
                original_error=e,
            )
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Failed to update page {user_id}/{page_id}: {e}")
            raise DatabaseError(
                "Failed to update page",
                operation="update",
                collection=PAGES_COLLECTION,
                original_error=e,
            )

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, user_id: Optional[str], page_id: str, data: Dict[str, Any]) -> Page:
        """Convert a Firestore document to a domain entity."""
        try:
            return Page.model_validate({
                **data,
                "id": page_id,
                "userId": data.get("userId") or user_id,
            })
        except SchemaError as e:
            raise DatabaseError(
                f"Malformed page document {page_id}",
                operation="read",
                collection=PAGES_COLLECTION,
                original_error=e,
            )
