"""
Stripe Webhook Dispatcher

Routes verified Stripe events to handlers by event tag.

Subscription events keep the user's plan fields in sync. Publication events
(checkout, payment intent, dispute) move pages through the publication
state machine.

Handlers rely on overwrite semantics for duplicate delivery; events are not
deduplicated by ID. Errors propagate so the route answers 500 and Stripe
retries.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from memorizu.config.settings import get_settings
from memorizu.domain.page import PAGE_PUBLICATION_TYPE, PublicationTransition
from memorizu.domain.subscription import (
    PlanTier,
    SubscriptionStatus,
    plan_for_price,
)
from memorizu.domain.webhook_events import WebhookEventType
from memorizu.infrastructure.exceptions import NotFoundError
from memorizu.infrastructure.firestore.user_repository import UserRepository
from memorizu.infrastructure.payments.stripe_service import StripeService
from memorizu.services.publication_service import PublicationStateService


logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[None]]


def _object_id(value: Any) -> Optional[str]:
    """Stripe fields may be an ID string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id")
    return value


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class WebhookDispatcher:
    """Dispatches Stripe events to subscription and publication handlers."""

    def __init__(
        self,
        stripe_service: StripeService,
        users: UserRepository,
        publication: PublicationStateService,
        price_table: Optional[Dict[str, str]] = None,
    ):
        self._stripe = stripe_service
        self._users = users
        self._publication = publication
        self._price_table = (
            price_table if price_table is not None else get_settings().plan_price_ids
        )

        self._handlers: Dict[WebhookEventType, Handler] = {
            WebhookEventType.SUBSCRIPTION_CREATED: self.handle_subscription_change,
            WebhookEventType.SUBSCRIPTION_UPDATED: self.handle_subscription_change,
            WebhookEventType.SUBSCRIPTION_DELETED: self.handle_subscription_deleted,
            WebhookEventType.INVOICE_PAYMENT_SUCCEEDED: self.handle_invoice_payment_succeeded,
            WebhookEventType.INVOICE_PAYMENT_FAILED: self.handle_invoice_payment_failed,
            WebhookEventType.CHECKOUT_SESSION_COMPLETED: self.handle_checkout_completed,
            WebhookEventType.PAYMENT_INTENT_SUCCEEDED: self.handle_payment_intent_succeeded,
            WebhookEventType.PAYMENT_INTENT_FAILED: self.handle_payment_intent_failed,
            WebhookEventType.CHARGE_DISPUTE_CREATED: self.handle_charge_dispute,
            WebhookEventType.UNKNOWN: self.handle_unknown,
        }

    async def dispatch(self, event: Dict[str, Any]) -> WebhookEventType:
        """
        Run the handler for an already-verified event.

        Returns:
            The resolved event type (UNKNOWN for unhandled tags)
        """
        event_type = WebhookEventType.from_tag(event.get("type"))
        data_object = (event.get("data") or {}).get("object") or {}

        logger.info(f"Processing webhook event: {event.get('type')} ({event.get('id')})")
        await self._handlers[event_type](data_object)
        return event_type

    # =========================================================================
    # Subscription Handlers
    # =========================================================================

    async def handle_subscription_change(self, subscription: Dict[str, Any]) -> None:
        """
        Sync plan fields from a created/updated subscription.

        The plan comes from the first item's price through the static
        price -> plan table; unmatched prices resolve to free.
        """
        user_id = (subscription.get("metadata") or {}).get("userId")
        if not user_id:
            logger.warning(f"Subscription {subscription.get('id')} has no userId metadata")
            return

        items = (subscription.get("items") or {}).get("data") or []
        first_item = items[0] if items else {}
        price_id = (first_item.get("price") or {}).get("id")
        plan = plan_for_price(price_id, self._price_table)

        # Newer API versions report the period on the item instead
        period_end = subscription.get("current_period_end") or first_item.get(
            "current_period_end"
        )

        await self._users.update(user_id, {
            "plan": plan.value,
            "subscriptionId": subscription.get("id"),
            "subscriptionStatus": subscription.get("status"),
            "stripeCustomerId": _object_id(subscription.get("customer")),
            "currentPeriodEnd": _timestamp(period_end),
            "cancelAtPeriodEnd": bool(subscription.get("cancel_at_period_end")),
        })
        logger.info(
            f"Synced subscription {subscription.get('id')} for user {user_id}: "
            f"plan={plan.value}, status={subscription.get('status')}"
        )

    async def handle_subscription_deleted(self, subscription: Dict[str, Any]) -> None:
        """Downgrade the user to the free plan."""
        user_id = (subscription.get("metadata") or {}).get("userId")
        if not user_id:
            logger.warning(f"Subscription {subscription.get('id')} has no userId metadata")
            return

        await self._users.update(user_id, {
            "plan": PlanTier.FREE.value,
            "subscriptionId": None,
            "subscriptionStatus": SubscriptionStatus.CANCELED.value,
            "currentPeriodEnd": None,
            "cancelAtPeriodEnd": False,
        })
        logger.info(f"Downgraded user {user_id} to free plan")

    async def handle_invoice_payment_succeeded(self, invoice: Dict[str, Any]) -> None:
        """
        Re-fetch the invoice's subscription and re-sync it.

        Covers subscription events that arrived out of order or not at all.
        """
        subscription_id = _object_id(invoice.get("subscription"))
        if not subscription_id:
            details = ((invoice.get("parent") or {}).get("subscription_details") or {})
            subscription_id = _object_id(details.get("subscription"))

        if not subscription_id:
            logger.debug(f"Invoice {invoice.get('id')} is not tied to a subscription")
            return

        subscription = await self._stripe.get_subscription(subscription_id)
        await self.handle_subscription_change(subscription)

    async def handle_invoice_payment_failed(self, invoice: Dict[str, Any]) -> None:
        """Log only; the subscription status change arrives as its own event."""
        user_id = (invoice.get("metadata") or {}).get("userId")
        logger.warning(
            f"Invoice payment failed for user {user_id or 'unknown'} "
            f"(customer {_object_id(invoice.get('customer'))})"
        )

    # =========================================================================
    # Publication Handlers
    # =========================================================================

    @staticmethod
    def _publication_target(metadata: Optional[Dict[str, Any]]) -> Optional[Tuple[str, str]]:
        """(userId, pageId) for publication payments, None otherwise."""
        metadata = metadata or {}
        user_id = metadata.get("userId")
        page_id = metadata.get("pageId")
        if not user_id or not page_id:
            return None
        if metadata.get("type", PAGE_PUBLICATION_TYPE) != PAGE_PUBLICATION_TYPE:
            return None
        return user_id, page_id

    async def _apply(
        self,
        target: Tuple[str, str],
        transition: PublicationTransition,
        **kwargs: Any,
    ) -> None:
        user_id, page_id = target
        try:
            await self._publication.transition(user_id, page_id, transition, **kwargs)
        except NotFoundError:
            # Deleted pages would otherwise be retried by Stripe for days
            logger.warning(
                f"Webhook {transition.value} for missing page {user_id}/{page_id}, skipped"
            )

    async def handle_checkout_completed(self, session: Dict[str, Any]) -> None:
        """Publish the page once its checkout is paid."""
        target = self._publication_target(session.get("metadata"))
        if target is None:
            return

        if session.get("payment_status") == "unpaid":
            # Delayed payment methods settle later through payment_intent.succeeded
            logger.info(f"Checkout {session.get('id')} completed but not yet paid")
            return

        await self._apply(
            target,
            PublicationTransition.PAYMENT_CONFIRMED,
            payment_intent_id=_object_id(session.get("payment_intent")),
        )

    async def handle_payment_intent_succeeded(self, intent: Dict[str, Any]) -> None:
        target = self._publication_target(intent.get("metadata"))
        if target is None:
            return

        await self._apply(
            target,
            PublicationTransition.PAYMENT_CONFIRMED,
            payment_intent_id=intent.get("id"),
        )

    async def handle_payment_intent_failed(self, intent: Dict[str, Any]) -> None:
        target = self._publication_target(intent.get("metadata"))
        if target is None:
            return

        await self._apply(
            target,
            PublicationTransition.PAYMENT_FAILED,
            payment_intent_id=intent.get("id"),
        )

    async def handle_charge_dispute(self, dispute: Dict[str, Any]) -> None:
        """Unpublish the page whose charge is disputed."""
        charge_id = _object_id(dispute.get("charge"))
        if not charge_id:
            return

        charge = await self._stripe.get_charge(charge_id)
        target = self._publication_target(charge.get("metadata"))
        if target is None:
            return

        await self._apply(
            target,
            PublicationTransition.DISPUTED,
            dispute_id=dispute.get("id"),
        )
        logger.warning(f"Dispute {dispute.get('id')} opened for page {target[1]}")

    async def handle_unknown(self, data_object: Dict[str, Any]) -> None:
        logger.debug(f"Unhandled event object: {data_object.get('object')}")
