"""
Pricing Service

Resolves the publication fee. Falls back to the default pricing when the
config document is missing or unreadable, so checkout never breaks on it.
"""

import logging
from typing import Optional

from memorizu.domain.pricing import DEFAULT_PUBLICATION_PRICING, PublicationPricing
from memorizu.infrastructure.firestore.pricing_repository import PricingRepository


logger = logging.getLogger(__name__)


class PricingService:
    """Fetches or initializes the publication pricing config."""

    def __init__(self, repo: PricingRepository):
        self._repo = repo

    async def get_pricing(self) -> PublicationPricing:
        """Stored pricing, or the default when absent or unreadable."""
        try:
            pricing = await self._repo.get()
        except Exception as e:
            logger.error(f"Error getting publication pricing, using default: {e}")
            return DEFAULT_PUBLICATION_PRICING

        if pricing is None:
            logger.debug("Publication pricing not configured, using default")
            return DEFAULT_PUBLICATION_PRICING

        return pricing

    async def init_pricing(
        self,
        pricing: Optional[PublicationPricing] = None,
    ) -> PublicationPricing:
        """Write the given pricing (default if None) to the config document."""
        return await self._repo.set(pricing or DEFAULT_PUBLICATION_PRICING)
