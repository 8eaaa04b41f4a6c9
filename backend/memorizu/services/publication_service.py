"""
Publication State Service

Applies publication transitions to stored pages. Every payment/publish write
in the application goes through PublicationStateService.transition().
"""

import logging
from datetime import datetime
from typing import Optional

from memorizu.domain.page import Page, PublicationTransition, build_transition
from memorizu.infrastructure.exceptions import NotFoundError
from memorizu.infrastructure.firestore.page_repository import PageRepository


logger = logging.getLogger(__name__)


class PublicationStateService:
    """Loads a page, computes the transition update, writes it, reads back."""

    def __init__(self, pages: PageRepository):
        self._pages = pages

    async def get_page(self, user_id: str, page_id: str) -> Page:
        """Get a page or raise NotFoundError."""
        page = await self._pages.get(user_id, page_id)
        if page is None:
            raise NotFoundError("Page not found", operation="get", collection="pages")
        return page

    async def transition(
        self,
        user_id: str,
        page_id: str,
        transition: PublicationTransition,
        *,
        page: Optional[Page] = None,
        payment_intent_id: Optional[str] = None,
        paid_at: Optional[datetime] = None,
        refund_id: Optional[str] = None,
        dispute_id: Optional[str] = None,
    ) -> Page:
        """
        Apply a transition and return the page as stored afterwards.

        Args:
            page: Already-loaded page state, skips the initial read

        Raises:
            NotFoundError: page does not exist
            ConflictError: transition not allowed from the current state
        """
        if page is None:
            page = await self.get_page(user_id, page_id)

        update = build_transition(
            page,
            user_id,
            transition,
            payment_intent_id=payment_intent_id,
            paid_at=paid_at,
            refund_id=refund_id,
            dispute_id=dispute_id,
        )

        if not update:
            logger.info(
                f"Transition {transition.value} is a no-op for page {page_id} "
                f"(status={page.payment_status.value})"
            )
            return page

        await self._pages.update(user_id, page_id, update)
        logger.info(
            f"Page {user_id}/{page_id}: {page.payment_status.value} -> "
            f"{update['paymentStatus']} via {transition.value}"
        )

        return await self._pages.get(user_id, page_id) or page
