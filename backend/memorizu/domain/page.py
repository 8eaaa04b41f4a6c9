"""
Page Domain Models

Page entity and the publication state machine.

build_transition() is the only producer of payment/publish field updates.
The reconciler, the webhook handlers, the refund handler and the debug
override all go through it, so a page is never marked published without
also being marked paid.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from memorizu.infrastructure.exceptions import ConflictError


PAGE_PUBLICATION_TYPE = "page_publication"
MANUAL_OVERRIDE_INTENT = "manual-override"


class PaymentStatus(str, Enum):
    """Payment state of a page."""
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    DISPUTED = "disputed"


class PublicationTransition(str, Enum):
    """Events that move a page between payment states."""
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_RECOVERED = "payment_recovered"
    MANUAL_OVERRIDE = "manual_override"
    PAYMENT_FAILED = "payment_failed"
    REFUNDED = "refunded"
    DISPUTED = "disputed"


_PUBLISHING_TRANSITIONS = {
    PublicationTransition.PAYMENT_CONFIRMED,
    PublicationTransition.PAYMENT_RECOVERED,
    PublicationTransition.MANUAL_OVERRIDE,
}


# =============================================================================
# Domain Entities
# =============================================================================

class PageSettings(BaseModel):
    """Visual settings chosen in the builder."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    background_color: Optional[str] = None
    font_family: Optional[str] = None
    custom_css: Optional[str] = None


class Page(BaseModel):
    """Page document stored at users/{userId}/pages/{pageId}."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    user_id: Optional[str] = None
    title: Optional[str] = None
    components: List[Dict[str, Any]] = Field(default_factory=list)
    settings: PageSettings = Field(default_factory=PageSettings)
    published: bool = False
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_intent_id: Optional[str] = None
    published_url: Optional[str] = None
    custom_slug: Optional[str] = None
    paid_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    refund_id: Optional[str] = None
    recovered_at: Optional[datetime] = None
    disputed_at: Optional[datetime] = None
    dispute_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("payment_status", mode="before")
    @classmethod
    def _coerce_payment_status(cls, value):
        # Older documents carry no status, or "pending" from the client SDK era
        try:
            return PaymentStatus(value)
        except ValueError:
            return PaymentStatus.UNPAID

    @field_validator("components", "settings", mode="before")
    @classmethod
    def _coerce_empty(cls, value, info):
        if value:
            return value
        return [] if info.field_name == "components" else {}

    @field_validator("published", mode="before")
    @classmethod
    def _coerce_published(cls, value):
        return False if value is None else value

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    @property
    def is_live(self) -> bool:
        """Published and paid: nothing left to buy."""
        return self.published and self.is_paid


def published_url_for(user_id: str, page_id: str) -> str:
    """Public path of a published page."""
    return f"{user_id}/{page_id}"


# =============================================================================
# State Machine
# =============================================================================

def build_transition(
    page: Page,
    user_id: str,
    transition: PublicationTransition,
    *,
    payment_intent_id: Optional[str] = None,
    paid_at: Optional[datetime] = None,
    refund_id: Optional[str] = None,
    dispute_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Compute the Firestore field update for a publication transition.

    Args:
        page: Current page state
        user_id: Owner of the page
        transition: Transition to apply
        payment_intent_id: Stripe payment intent tied to the payment
        paid_at: When the payment settled (defaults to now)
        refund_id: Stripe refund ID (REFUNDED)
        dispute_id: Stripe dispute ID (DISPUTED)
        now: Clock override for tests

    Returns:
        Dict of camelCase fields to write. Empty when the transition is a
        no-op for the current state.

    Raises:
        ConflictError: refund requested for a page that is not paid
    """
    now = now or datetime.now(timezone.utc)

    if transition in _PUBLISHING_TRANSITIONS:
        update: Dict[str, Any] = {
            "paymentStatus": PaymentStatus.PAID.value,
            "paymentIntentId": payment_intent_id or page.payment_intent_id,
            "paidAt": paid_at or now,
            "published": True,
            "publishedUrl": published_url_for(user_id, page.id),
            "publishedAt": now,
        }
        if transition == PublicationTransition.PAYMENT_RECOVERED:
            update["recoveredAt"] = now
        elif transition == PublicationTransition.MANUAL_OVERRIDE:
            update["paymentIntentId"] = payment_intent_id or MANUAL_OVERRIDE_INTENT
            update["overriddenAt"] = now
        return update

    if transition == PublicationTransition.PAYMENT_FAILED:
        # A late failure for an attempt that was superseded by a success
        if page.is_paid:
            return {}
        return {
            "paymentStatus": PaymentStatus.FAILED.value,
            "paymentIntentId": payment_intent_id or page.payment_intent_id,
            "published": False,
            "publishedUrl": None,
        }

    if transition == PublicationTransition.REFUNDED:
        if not page.is_paid:
            raise ConflictError(
                "Page is not paid or already refunded",
                current_status=page.payment_status.value,
            )
        return {
            "paymentStatus": PaymentStatus.REFUNDED.value,
            "published": False,
            "publishedUrl": None,
            "refundedAt": now,
            "refundId": refund_id,
        }

    if transition == PublicationTransition.DISPUTED:
        return {
            "paymentStatus": PaymentStatus.DISPUTED.value,
            "published": False,
            "publishedUrl": None,
            "disputedAt": now,
            "disputeId": dispute_id,
        }

    raise ValueError(f"Unsupported transition: {transition}")
