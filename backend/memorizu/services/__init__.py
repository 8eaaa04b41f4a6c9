"""
Application Services

Payment and publication workflows built on the Firestore repositories and
the Stripe service.
"""

from memorizu.services.checkout_service import CheckoutResult, CheckoutService
from memorizu.services.pricing_service import PricingService
from memorizu.services.publication_service import PublicationStateService
from memorizu.services.reconciliation_service import (
    ReconciliationService,
    find_publication_charge,
)
from memorizu.services.refund_service import RefundService
from memorizu.services.slug_service import SlugService, generate_slug
from memorizu.services.subscription_limits import SubscriptionLimitService
from memorizu.services.webhook_service import WebhookDispatcher

__all__ = [
    "CheckoutResult",
    "CheckoutService",
    "PricingService",
    "PublicationStateService",
    "ReconciliationService",
    "find_publication_charge",
    "RefundService",
    "SlugService",
    "generate_slug",
    "SubscriptionLimitService",
    "WebhookDispatcher",
]
