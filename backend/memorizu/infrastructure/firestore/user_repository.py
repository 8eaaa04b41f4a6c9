"""
User Repository

Data access for user documents (users/{userId}).
Writes use merge semantics, so a webhook can create the document on first
contact.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud.firestore import AsyncClient
from pydantic import ValidationError as SchemaError

from memorizu.domain.subscription import UserAccount
from memorizu.infrastructure.exceptions import DatabaseError


logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class UserRepository:
    """Repository for user documents."""

    def __init__(self, db: AsyncClient):
        self._db = db

    def _ref(self, user_id: str):
        return self._db.collection(USERS_COLLECTION).document(user_id)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get(self, user_id: str) -> Optional[UserAccount]:
        """
        Get a user by ID.

        Args:
            user_id: Firebase Auth UID

        Returns:
            UserAccount or None if the document does not exist
        """
        try:
            snapshot = await self._ref(user_id).get()
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Failed to read user {user_id}: {e}")
            raise DatabaseError(
                "Failed to read user",
                operation="get",
                collection=USERS_COLLECTION,
                original_error=e,
            )

        if not snapshot.exists:
            return None

        return self._to_domain(snapshot.id, snapshot.to_dict() or {})

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def update(self, user_id: str, fields: Dict[str, Any]) -> None:
        """
        Merge fields into the user document (created if missing).

        Args:
            user_id: Firebase Auth UID
            fields: camelCase fields to write
        """
        data = {**fields, "updatedAt": datetime.now(timezone.utc)}
        try:
            await self._ref(user_id).set(data, merge=True)
        except gcp_exceptions.GoogleAPICallError as e:
            logger.error(f"Failed to update user {user_id}: {e}")
            raise DatabaseError(
                "Failed to update user",
                operation="update",
                collection=USERS_COLLECTION,
                original_error=e,
            )

    async def get_or_create(self, user_id: str) -> UserAccount:
        """Get the user, creating an empty document first if needed."""
        existing = await self.get(user_id)
        if existing:
            return existing

        await self.update(user_id, {"createdAt": datetime.now(timezone.utc)})
        logger.info(f"Created user document for {user_id}")
        return await self.get(user_id) or UserAccount(id=user_id)

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, user_id: str, data: Dict[str, Any]) -> UserAccount:
        """Convert a Firestore document to a domain entity."""
        try:
            return UserAccount.model_validate({**data, "id": user_id})
        except SchemaError as e:
            raise DatabaseError(
                f"Malformed user document {user_id}",
                operation="read",
                collection=USERS_COLLECTION,
                original_error=e,
            )
