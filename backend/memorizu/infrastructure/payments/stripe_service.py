"""
Stripe Payment Service

Infrastructure service for Stripe payment processing.
Handles customers, checkout sessions (plans and page publication), charge
history, refunds, the billing portal and webhook verification.

Raw Stripe errors are logged here and replaced by generic messages; callers
never see provider error text.
"""

import logging
from itertools import islice
from typing import Any, Dict, List, Optional
import stripe
from stripe import StripeError

from memorizu.config.settings import get_settings
from memorizu.domain.page import PAGE_PUBLICATION_TYPE
from memorizu.domain.pricing import PublicationPricing
from memorizu.infrastructure.exceptions import (
    PaymentProviderError,
    WebhookSignatureError,
)


logger = logging.getLogger(__name__)

# Stripe rejects any other value in Refund.create(reason=...)
STRIPE_REFUND_REASONS = {"duplicate", "fraudulent", "requested_by_customer"}

# Largest page size the charges list endpoint accepts
CHARGES_PAGE_SIZE = 100


class StripeServiceError(PaymentProviderError):
    """Raised when a Stripe API call fails."""
    pass


class StripeService:
    """
    Stripe payment processing service.

    Stateless apart from the module-level API key; safe to share across
    requests.
    """

    def __init__(self):
        """Initialize Stripe with API key from settings."""
        settings = get_settings()
        self._api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret
        self._publication_webhook_secret = settings.publication_webhook_secret

        if self._api_key:
            stripe.api_key = self._api_key
        if settings.stripe_api_version:
            stripe.api_version = settings.stripe_api_version

    # =========================================================================
    # Customer Management
    # =========================================================================

    async def create_customer(
        self,
        user_id: str,
        email: Optional[str] = None,
    ) -> stripe.Customer:
        """
        Create a new Stripe customer.

        Args:
            user_id: Firebase UID (stored in metadata)
            email: Optional customer email for receipts

        Returns:
            stripe.Customer object
        """
        try:
            customer = stripe.Customer.create(
                email=email,
                metadata={
                    "userId": user_id,
                    "source": "memorizu",
                },
            )
            logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
            return customer

        except StripeError as e:
            logger.error(f"Failed to create Stripe customer: {e}")
            raise StripeServiceError(
                "Failed to create customer", operation="create_customer", original_error=e
            )

    async def get_or_create_customer(
        self,
        user_id: str,
        existing_customer_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> stripe.Customer:
        """
        Get existing customer or create new one.

        A stored customer that was deleted on the Stripe side is replaced.
        """
        if existing_customer_id:
            try:
                customer = stripe.Customer.retrieve(existing_customer_id)
                if not customer.get("deleted"):
                    return customer
            except StripeError:
                logger.warning(f"Customer {existing_customer_id} not found, creating new")

        return await self.create_customer(user_id, email)

    # =========================================================================
    # Checkout Sessions
    # =========================================================================

    async def create_subscription_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        plan: str,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> stripe.checkout.Session:
        """
        Create a Checkout Session for a recurring plan.

        The userId goes into subscription metadata; the subscription webhooks
        use it to find the user document.
        """
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                allow_promotion_codes=True,
                billing_address_collection="auto",
                metadata={
                    "userId": user_id,
                    "plan": plan,
                },
                subscription_data={
                    "metadata": {
                        "userId": user_id,
                        "plan": plan,
                    },
                },
            )

            logger.info(
                f"Created subscription checkout {session.id} for user {user_id}, plan={plan}"
            )
            return session

        except StripeError as e:
            logger.error(f"Failed to create subscription checkout: {e}")
            raise StripeServiceError(
                "Failed to create checkout session",
                operation="create_subscription_checkout",
                original_error=e,
            )

    async def create_publication_checkout_session(
        self,
        customer_id: str,
        user_id: str,
        page_id: str,
        page_title: str,
        pricing: PublicationPricing,
        success_url: str,
        cancel_url: str,
    ) -> stripe.checkout.Session:
        """
        Create a one-time Checkout Session for publishing a page.

        The page metadata is copied onto the payment intent so the resulting
        charge carries it too; the reconciler matches on those tags.
        """
        metadata = {
            "userId": user_id,
            "pageId": page_id,
            "type": PAGE_PUBLICATION_TYPE,
        }

        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": pricing.currency,
                            "product_data": {
                                "name": f"Publish Page: {page_title}",
                                "description": pricing.description,
                                "metadata": {
                                    "pageId": page_id,
                                    "userId": user_id,
                                },
                            },
                            "unit_amount": pricing.unit_amount,
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
                billing_address_collection="auto",
            )

            logger.info(
                f"Created publication checkout {session.id} for page {page_id}, "
                f"amount={pricing.unit_amount} {pricing.currency}"
            )
            return session

        except StripeError as e:
            logger.error(f"Failed to create publication checkout: {e}")
            raise StripeServiceError(
                "Failed to create publication payment",
                operation="create_publication_checkout",
                original_error=e,
            )

    # =========================================================================
    # Customer Portal (Subscription Management)
    # =========================================================================

    async def create_portal_session(
        self,
        customer_id: str,
        return_url: str,
    ) -> stripe.billing_portal.Session:
        """Create a Billing Portal session for self-service management."""
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )

            logger.info(f"Created portal session for customer {customer_id}")
            return session

        except StripeError as e:
            logger.error(f"Failed to create portal session: {e}")
            raise StripeServiceError(
                "Failed to create portal session",
                operation="create_portal_session",
                original_error=e,
            )

    # =========================================================================
    # Subscriptions and Charges
    # =========================================================================

    async def get_subscription(self, subscription_id: str) -> stripe.Subscription:
        """
        Retrieve a subscription by ID.

        Raises:
            StripeServiceError: lookup failed (webhook callers let this
            surface so Stripe retries delivery)
        """
        try:
            return stripe.Subscription.retrieve(subscription_id)
        except StripeError as e:
            logger.error(f"Failed to retrieve subscription {subscription_id}: {e}")
            raise StripeServiceError(
                "Failed to retrieve subscription",
                operation="get_subscription",
                original_error=e,
            )

    async def get_charge(self, charge_id: str) -> stripe.Charge:
        """Retrieve a single charge."""
        try:
            return stripe.Charge.retrieve(charge_id)
        except StripeError as e:
            logger.error(f"Failed to retrieve charge {charge_id}: {e}")
            raise StripeServiceError(
                "Failed to retrieve charge", operation="get_charge", original_error=e
            )

    async def list_charges(
        self,
        customer_id: str,
        max_charges: int = CHARGES_PAGE_SIZE,
    ) -> List[stripe.Charge]:
        """
        List a customer's charges, newest first.

        Follows Stripe's pagination until max_charges records were read.
        """
        try:
            listing = stripe.Charge.list(
                customer=customer_id,
                limit=min(max_charges, CHARGES_PAGE_SIZE),
            )
            return list(islice(listing.auto_paging_iter(), max_charges))
        except StripeError as e:
            logger.error(f"Failed to list charges for {customer_id}: {e}")
            raise StripeServiceError(
                "Failed to list charges", operation="list_charges", original_error=e
            )

    # =========================================================================
    # Refunds
    # =========================================================================

    async def create_refund(
        self,
        payment_intent_id: str,
        reason: Optional[str] = None,
    ) -> stripe.Refund:
        """
        Refund a page publication payment in full.

        Args:
            payment_intent_id: Payment intent of the publication charge
            reason: Free-text or Stripe reason code; only Stripe's codes are
                sent as the refund reason, everything is kept in metadata
        """
        params: Dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "metadata": {
                "type": f"{PAGE_PUBLICATION_TYPE}_refund",
                "refund_reason": reason or "requested_by_customer",
            },
        }
        if reason in STRIPE_REFUND_REASONS:
            params["reason"] = reason

        try:
            refund = stripe.Refund.create(**params)
            logger.info(f"Created refund {refund.id} for payment intent {payment_intent_id}")
            return refund

        except StripeError as e:
            logger.error(f"Failed to create refund: {e}")
            raise StripeServiceError(
                "Failed to process refund", operation="create_refund", original_error=e
            )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: Optional[str],
        publication: bool = False,
    ) -> stripe.Event:
        """
        Verify webhook signature and construct event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header
            publication: Verify with the publication endpoint secret

        Returns:
            stripe.Event if valid

        Raises:
            WebhookSignatureError if the header is missing or invalid
        """
        if not signature:
            raise WebhookSignatureError("No signature")

        secret = self._publication_webhook_secret if publication else self._webhook_secret
        if not secret:
            logger.error("Stripe webhook secret is not configured")
            raise WebhookSignatureError("Invalid signature")

        try:
            return stripe.Webhook.construct_event(payload, signature, secret)

        except ValueError as e:
            logger.warning(f"Invalid webhook payload: {e}")
            raise WebhookSignatureError("Invalid payload")
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Invalid webhook signature: {e}")
            raise WebhookSignatureError("Invalid signature")


# =============================================================================
# Singleton Instance (Dependency Injection Ready)
# =============================================================================

_stripe_service_instance: Optional[StripeService] = None


def get_stripe_service() -> StripeService:
    """Get or create Stripe service singleton."""
    global _stripe_service_instance

    if _stripe_service_instance is None:
        _stripe_service_instance = StripeService()

    return _stripe_service_instance


def reset_stripe_service() -> None:
    """Drop the singleton (called on app shutdown)."""
    global _stripe_service_instance
    _stripe_service_instance = None
