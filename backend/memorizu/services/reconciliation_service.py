"""
Publication Reconciliation Service

Repairs pages whose payment succeeded but whose webhook never landed.
Looks for a succeeded Stripe charge tagged with the page and, when found,
marks the page paid and published with a recoveredAt marker.

The reconciler is pull-based: a charge that settles after the call is only
picked up by calling it again.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from memorizu.config.settings import get_settings
from memorizu.domain.page import PAGE_PUBLICATION_TYPE, Page, PublicationTransition
from memorizu.infrastructure.exceptions import NotFoundError
from memorizu.infrastructure.firestore.user_repository import UserRepository
from memorizu.infrastructure.payments.stripe_service import StripeService
from memorizu.services.publication_service import PublicationStateService


logger = logging.getLogger(__name__)


def find_publication_charge(
    charges: Iterable[Dict[str, Any]],
    user_id: str,
    page_id: str,
) -> Optional[Dict[str, Any]]:
    """
    First succeeded charge tagged as the publication payment of this page.

    Refunded or disputed charges never count as payment.

    Args:
        charges: Charges newest first
        user_id: Page owner
        page_id: Page being reconciled
    """
    for charge in charges:
        metadata = charge.get("metadata") or {}
        if (
            charge.get("status") == "succeeded"
            and not charge.get("refunded")
            and not charge.get("disputed")
            and metadata.get("pageId") == page_id
            and metadata.get("userId") == user_id
            and metadata.get("type") == PAGE_PUBLICATION_TYPE
        ):
            return charge
    return None


def _charge_time(charge: Dict[str, Any]) -> datetime:
    return datetime.fromtimestamp(charge.get("created") or 0, tz=timezone.utc)


class ReconciliationService:
    """Verifies publication payments against Stripe's charge history."""

    def __init__(
        self,
        stripe_service: StripeService,
        users: UserRepository,
        publication: PublicationStateService,
        max_charges: Optional[int] = None,
    ):
        self._stripe = stripe_service
        self._users = users
        self._publication = publication
        self._max_charges = max_charges or get_settings().reconciliation_max_charges

    async def _customer_id(self, user_id: str) -> str:
        user = await self._users.get(user_id)
        if user is None or not user.stripe_customer_id:
            raise NotFoundError("No Stripe customer found", operation="get", collection="users")
        return user.stripe_customer_id

    async def verify_and_publish(self, user_id: str, page_id: str) -> Dict[str, Any]:
        """
        Publish a page if Stripe holds a succeeded charge for it.

        Returns:
            {"success", "page": {...}, "payment": {...}}

        Raises:
            NotFoundError: no Stripe customer, no matching charge, or no page
        """
        customer_id = await self._customer_id(user_id)
        logger.info(f"Verifying payment for page {page_id}, user {user_id}")

        charges = await self._stripe.list_charges(customer_id, max_charges=self._max_charges)
        charge = find_publication_charge(charges, user_id, page_id)

        if charge is None:
            logger.info(
                f"No succeeded publication charge for page {page_id} "
                f"in the last {len(charges)} charges"
            )
            raise NotFoundError(
                "No successful payment found for this page",
                operation="reconcile",
                collection="charges",
            )

        paid_at = _charge_time(charge)
        page: Page = await self._publication.transition(
            user_id,
            page_id,
            PublicationTransition.PAYMENT_RECOVERED,
            payment_intent_id=charge.get("payment_intent"),
            paid_at=paid_at,
        )

        logger.info(
            f"Recovered publication of page {page_id} from charge {charge.get('id')}"
        )

        return {
            "success": True,
            "page": {
                "id": page_id,
                "published": page.published,
                "paymentStatus": page.payment_status.value,
                "recoveredAt": page.recovered_at,
            },
            "payment": {
                "chargeId": charge.get("id"),
                "amount": (charge.get("amount") or 0) / 100,
                "date": paid_at,
            },
        }

    async def list_publication_payments(self, user_id: str) -> List[Dict[str, Any]]:
        """Publication charges for a user's customer (empty without one)."""
        user = await self._users.get(user_id)
        if user is None or not user.stripe_customer_id:
            return []

        charges = await self._stripe.list_charges(
            user.stripe_customer_id, max_charges=self._max_charges
        )

        payments = []
        for charge in charges:
            metadata = charge.get("metadata") or {}
            if metadata.get("type") != PAGE_PUBLICATION_TYPE:
                continue
            payments.append({
                "id": charge.get("id"),
                "amount": (charge.get("amount") or 0) / 100,
                "currency": charge.get("currency"),
                "status": charge.get("status"),
                "description": charge.get("description") or "Page Publication",
                "createdAt": _charge_time(charge),
                "receiptUrl": charge.get("receipt_url"),
                "pageId": metadata.get("pageId"),
                "paymentIntentId": charge.get("payment_intent"),
                "refunded": bool(charge.get("refunded")),
            })
        return payments
