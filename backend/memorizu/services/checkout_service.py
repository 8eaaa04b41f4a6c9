"""
Checkout Service

Starts Stripe checkouts for plan subscriptions and page publication fees.

Nothing about the page or plan is written here: state only changes once
Stripe confirms payment (webhook) or the reconciler finds the charge. The
single write is saving a newly created Stripe customer ID on the user.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from memorizu.config.settings import get_settings
from memorizu.domain.subscription import PlanTier, plan_for_price
from memorizu.infrastructure.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from memorizu.infrastructure.firestore.page_repository import PageRepository
from memorizu.infrastructure.firestore.user_repository import UserRepository
from memorizu.infrastructure.payments.stripe_service import StripeService
from memorizu.services.pricing_service import PricingService


logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    session_id: str
    url: str


class CheckoutService:
    """Creates checkout and billing portal sessions."""

    def __init__(
        self,
        stripe_service: StripeService,
        users: UserRepository,
        pages: PageRepository,
        pricing: PricingService,
    ):
        self._stripe = stripe_service
        self._users = users
        self._pages = pages
        self._pricing = pricing

    @staticmethod
    def _base_url(origin: Optional[str]) -> str:
        return (origin or get_settings().frontend_url).rstrip("/")

    async def _ensure_customer_id(self, user_id: str) -> str:
        """Reuse the stored Stripe customer or create and store one."""
        user = await self._users.get_or_create(user_id)
        customer = await self._stripe.get_or_create_customer(
            user_id=user_id,
            existing_customer_id=user.stripe_customer_id,
            email=user.email,
        )

        if customer.id != user.stripe_customer_id:
            await self._users.update(user_id, {"stripeCustomerId": customer.id})

        return customer.id

    async def create_subscription_checkout(
        self,
        user_id: str,
        price_id: str,
        origin: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Start a recurring plan checkout.

        Raises:
            ValidationError: price is not one of the configured plan prices
        """
        plan = plan_for_price(price_id, get_settings().plan_price_ids)
        if plan == PlanTier.FREE:
            raise ValidationError("Unknown plan price", details={"priceId": price_id})

        customer_id = await self._ensure_customer_id(user_id)
        base_url = self._base_url(origin)

        session = await self._stripe.create_subscription_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            plan=plan.value,
            user_id=user_id,
            success_url=f"{base_url}/dashboard/billing?success=true",
            cancel_url=f"{base_url}/dashboard/billing?canceled=true",
        )

        return CheckoutResult(session_id=session.id, url=session.url)

    async def create_publication_checkout(
        self,
        user_id: str,
        page_id: str,
        origin: Optional[str] = None,
    ) -> CheckoutResult:
        """
        Start a one-time publication fee checkout for a page.

        Raises:
            NotFoundError: page does not exist under this user
            ConflictError: page is already published and paid
        """
        page = await self._pages.get(user_id, page_id)
        if page is None:
            raise NotFoundError("Page not found", operation="get", collection="pages")

        if page.is_live:
            raise ConflictError(
                "Page is already published and paid",
                current_status=page.payment_status.value,
            )

        pricing = await self._pricing.get_pricing()
        customer_id = await self._ensure_customer_id(user_id)
        base_url = self._base_url(origin)

        session = await self._stripe.create_publication_checkout_session(
            customer_id=customer_id,
            user_id=user_id,
            page_id=page_id,
            page_title=page.title or "Untitled Page",
            pricing=pricing,
            success_url=f"{base_url}/builder/{page_id}?payment=success",
            cancel_url=f"{base_url}/builder/{page_id}?payment=canceled",
        )

        return CheckoutResult(session_id=session.id, url=session.url)

    async def create_portal_session(
        self,
        user_id: str,
        origin: Optional[str] = None,
    ) -> str:
        """
        Billing portal URL for a user with a Stripe customer.

        Raises:
            NotFoundError: user has no Stripe customer yet
        """
        user = await self._users.get(user_id)
        if user is None or not user.stripe_customer_id:
            raise NotFoundError("No customer found", operation="get", collection="users")

        session = await self._stripe.create_portal_session(
            customer_id=user.stripe_customer_id,
            return_url=f"{self._base_url(origin)}/dashboard/billing",
        )
        return session.url
