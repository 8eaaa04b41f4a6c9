"""
Pricing Repository

Reads and writes the publication pricing singleton (config/publication).
"""

import logging
from typing import Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud.firestore import AsyncClient
from pydantic import ValidationError as SchemaError

from memorizu.domain.pricing import PublicationPricing
from memorizu.infrastructure.exceptions import DatabaseError


logger = logging.getLogger(__name__)

CONFIG_COLLECTION = "config"
PUBLICATION_PRICING_DOC = "publication"


class PricingRepository:
    """Repository for the publication pricing config document."""

    def __init__(self, db: AsyncClient):
        self._db = db

    def _ref(self):
        return self._db.collection(CONFIG_COLLECTION).document(PUBLICATION_PRICING_DOC)

    async def get(self) -> Optional[PublicationPricing]:
        """Stored pricing, or None when it was never initialized."""
        try:
            snapshot = await self._ref().get()
        except gcp_exceptions.GoogleAPICallError as e:
            raise DatabaseError(
                "Failed to read pricing",
                operation="get",
                collection=CONFIG_COLLECTION,
                original_error=e,
            )

        if not snapshot.exists:
            return None

        try:
            return PublicationPricing.model_validate(snapshot.to_dict() or {})
        except SchemaError as e:
            raise DatabaseError(
                "Malformed pricing document",
                operation="read",
                collection=CONFIG_COLLECTION,
                original_error=e,
            )

    async def set(self, pricing: PublicationPricing) -> PublicationPricing:
        """Overwrite the pricing document."""
        try:
            await self._ref().set(pricing.model_dump())
        except gcp_exceptions.GoogleAPICallError as e:
            raise DatabaseError(
                "Failed to write pricing",
                operation="set",
                collection=CONFIG_COLLECTION,
                original_error=e,
            )

        logger.info(
            f"Publication pricing set to {pricing.price} {pricing.currency.upper()}"
        )
        return pricing
