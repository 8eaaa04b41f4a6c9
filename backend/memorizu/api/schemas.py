"""
API Request and Response Models

JSON bodies use camelCase keys, matching the web client and the stored
documents.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from memorizu.domain.pricing import PublicationPricing
from memorizu.domain.subscription import PlanLimits


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Requests
# =============================================================================

class SubscriptionCheckoutRequest(CamelModel):
    user_id: str = Field(min_length=1)
    price_id: str = Field(min_length=1)


class PageRequest(CamelModel):
    """Identifies one page of one user."""
    user_id: str = Field(min_length=1)
    page_id: str = Field(min_length=1)


class RefundRequest(PageRequest):
    payment_intent_id: str = Field(min_length=1)
    reason: Optional[str] = None


class PortalRequest(CamelModel):
    user_id: str = Field(min_length=1)


class ForcePublishRequest(PageRequest):
    payment_intent_id: Optional[str] = None


class SlugRequest(CamelModel):
    slug: str


# =============================================================================
# Responses
# =============================================================================

class CheckoutResponse(CamelModel):
    session_id: str
    url: str


class PortalResponse(CamelModel):
    url: str


class RefundResponse(CamelModel):
    success: bool
    refund_id: str
    amount: float


class PaymentsResponse(CamelModel):
    payments: List[Dict[str, Any]]


class WebhookResponse(CamelModel):
    received: bool = True


class PricingUpdateResponse(CamelModel):
    success: bool
    message: Optional[str] = None
    pricing: PublicationPricing


class ForcePublishResponse(CamelModel):
    success: bool
    message: str
    page_id: str
    published_url: Optional[str] = None


class QuickFixResponse(CamelModel):
    success: bool
    method: str
    page: Dict[str, Any]


class PageStatusResponse(CamelModel):
    id: str
    published: bool
    payment_status: str
    payment_intent_id: Optional[str] = None
    published_url: Optional[str] = None
    custom_slug: Optional[str] = None
    paid_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    recovered_at: Optional[datetime] = None
    disputed_at: Optional[datetime] = None


class LimitsResponse(CamelModel):
    plan: str
    limits: PlanLimits


class PageLimitResponse(CamelModel):
    allowed: bool
    current_pages: Optional[int] = None
    max_pages: int


class SlugResponse(CamelModel):
    success: bool
    custom_slug: Optional[str] = None
    url: Optional[str] = None
