"""
Refund Service

Refunds a paid page publication and unpublishes the page.
"""

import logging
from typing import Any, Dict, Optional

from memorizu.domain.page import PaymentStatus, PublicationTransition
from memorizu.infrastructure.exceptions import ConflictError
from memorizu.infrastructure.payments.stripe_service import StripeService
from memorizu.services.publication_service import PublicationStateService


logger = logging.getLogger(__name__)


class RefundService:
    """Calls Stripe's refund API, then applies the REFUNDED transition."""

    def __init__(
        self,
        stripe_service: StripeService,
        publication: PublicationStateService,
    ):
        self._stripe = stripe_service
        self._publication = publication

    async def refund_page(
        self,
        user_id: str,
        page_id: str,
        payment_intent_id: str,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Refund a page's publication payment.

        The stored status is checked before Stripe is called, so a page that
        is not paid never triggers a refund. Partial refunds are not tracked;
        any refund moves the page to refunded.

        Raises:
            NotFoundError: page does not exist
            ConflictError: page payment status is not paid
        """
        page = await self._publication.get_page(user_id, page_id)

        if page.payment_status != PaymentStatus.PAID:
            raise ConflictError(
                "Page is not paid or already refunded",
                current_status=page.payment_status.value,
            )

        if page.payment_intent_id and page.payment_intent_id != payment_intent_id:
            logger.warning(
                f"Refund for page {page_id} uses payment intent {payment_intent_id}, "
                f"page records {page.payment_intent_id}"
            )

        refund = await self._stripe.create_refund(payment_intent_id, reason)

        await self._publication.transition(
            user_id,
            page_id,
            PublicationTransition.REFUNDED,
            page=page,
            refund_id=refund.id,
        )

        return {
            "success": True,
            "refundId": refund.id,
            "amount": (refund.amount or 0) / 100,
        }
