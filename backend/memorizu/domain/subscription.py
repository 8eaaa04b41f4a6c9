"""
Subscription Domain Models

Plan tiers, user account entity, and the static plan limits table.
The effective plan check lives here so the limit gate and routes agree on it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PlanTier(str, Enum):
    """Subscription plan levels."""
    FREE = "free"
    PRO = "pro"
    BUSINESS = "business"


class SubscriptionStatus(str, Enum):
    """Stripe subscription lifecycle status."""
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAUSED = "paused"


class LimitFeature(str, Enum):
    """Features gated by plan limits."""
    MAX_PAGES = "maxPages"
    CAN_REMOVE_BRANDING = "canRemoveBranding"
    HAS_CUSTOM_DOMAIN = "hasCustomDomain"
    HAS_ANALYTICS = "hasAnalytics"
    HAS_PRIORITY_SUPPORT = "hasPrioritySupport"


# =============================================================================
# Domain Entities
# =============================================================================

class UserAccount(BaseModel):
    """User document stored at users/{userId}."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str
    email: Optional[str] = None
    plan: str = PlanTier.FREE.value
    stripe_customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    subscription_status: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("plan", mode="before")
    @classmethod
    def _default_plan(cls, value):
        return value or PlanTier.FREE.value

    @field_validator("cancel_at_period_end", mode="before")
    @classmethod
    def _default_cancel_flag(cls, value):
        return bool(value)


class PlanLimits(BaseModel):
    """Feature and quantity limits for a plan. max_pages of -1 means unlimited."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_pages: int = Field(description="Maximum pages, -1 for unlimited")
    can_remove_branding: bool
    has_custom_domain: bool
    has_analytics: bool
    has_priority_support: bool

    def allows_pages(self, current_count: int) -> bool:
        """Whether one more page can be created on top of current_count."""
        return self.max_pages < 0 or current_count < self.max_pages

    def feature(self, feature: LimitFeature):
        """Look up a single limit by its camelCase feature key."""
        return self.model_dump(by_alias=True)[feature.value]


# =============================================================================
# Plan Configuration (Business Logic)
# =============================================================================

PLAN_LIMITS = {
    PlanTier.FREE: PlanLimits(
        max_pages=3,
        can_remove_branding=False,
        has_custom_domain=False,
        has_analytics=False,
        has_priority_support=False,
    ),
    PlanTier.PRO: PlanLimits(
        max_pages=-1,
        can_remove_branding=True,
        has_custom_domain=True,
        has_analytics=True,
        has_priority_support=True,
    ),
    PlanTier.BUSINESS: PlanLimits(
        max_pages=-1,
        can_remove_branding=True,
        has_custom_domain=True,
        has_analytics=True,
        has_priority_support=True,
    ),
}


def parse_plan(value: Optional[str]) -> PlanTier:
    """Map a stored plan string to a tier; unknown values are free."""
    try:
        return PlanTier(value or PlanTier.FREE.value)
    except ValueError:
        return PlanTier.FREE


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def effective_plan(user: Optional[UserAccount], now: Optional[datetime] = None) -> PlanTier:
    """
    Resolve the plan a user is entitled to right now.

    A paid plan whose subscription is not active, or whose billing period has
    ended, is treated as free. The stored plan field is left untouched.
    """
    if user is None:
        return PlanTier.FREE

    plan = parse_plan(user.plan)
    if plan == PlanTier.FREE:
        return plan

    if user.subscription_status != SubscriptionStatus.ACTIVE.value:
        return PlanTier.FREE

    if user.current_period_end is not None:
        now = _as_utc(now or datetime.now(timezone.utc))
        if now > _as_utc(user.current_period_end):
            return PlanTier.FREE

    return plan


def get_plan_limits(plan: PlanTier) -> PlanLimits:
    """Get the limits table entry for a plan."""
    return PLAN_LIMITS.get(plan, PLAN_LIMITS[PlanTier.FREE])


def plan_for_price(price_id: Optional[str], price_table: dict[str, str]) -> PlanTier:
    """Resolve a Stripe price ID to a plan through the static table (default free)."""
    if not price_id:
        return PlanTier.FREE
    return parse_plan(price_table.get(price_id))
