"""
Stripe webhook event tags handled by the dispatcher.
"""

from enum import Enum
from typing import Optional


class WebhookEventType(str, Enum):
    """Closed set of event tags; anything else maps to UNKNOWN."""
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"
    CHARGE_DISPUTE_CREATED = "charge.dispute.created"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "WebhookEventType":
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN
