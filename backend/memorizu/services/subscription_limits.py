"""
Subscription Limit Gate

Answers "what may this user do" from their plan. Lapsed subscriptions are
treated as free without writing anything back, and any lookup failure
falls back to free limits.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from memorizu.domain.subscription import (
    LimitFeature,
    PlanLimits,
    PlanTier,
    effective_plan,
    get_plan_limits,
)
from memorizu.infrastructure.firestore.page_repository import PageRepository
from memorizu.infrastructure.firestore.user_repository import UserRepository


logger = logging.getLogger(__name__)


class SubscriptionLimitService:
    """Plan lookups for UI guards."""

    def __init__(self, users: UserRepository, pages: Optional[PageRepository] = None):
        self._users = users
        self._pages = pages

    async def get_effective_plan(
        self,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> PlanTier:
        try:
            user = await self._users.get(user_id)
            return effective_plan(user, now)
        except Exception as e:
            logger.error(f"Error checking subscription for {user_id}, using free plan: {e}")
            return PlanTier.FREE

    async def get_user_limits(
        self,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> PlanLimits:
        plan = await self.get_effective_plan(user_id, now)
        return get_plan_limits(plan)

    async def check_feature(self, user_id: str, feature: LimitFeature) -> Any:
        limits = await self.get_user_limits(user_id)
        return limits.feature(feature)

    async def check_page_limit(
        self,
        user_id: str,
        current_count: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Whether the user may create another page.

        Args:
            current_count: Known page count; counted from the store when None
        """
        limits = await self.get_user_limits(user_id)

        if current_count is None:
            if self._pages is None:
                raise ValueError("current_count is required without a page repository")
            try:
                current_count = await self._pages.count_for_user(user_id)
            except Exception as e:
                logger.error(f"Error counting pages for {user_id}: {e}")
                return {
                    "allowed": False,
                    "currentPages": None,
                    "maxPages": limits.max_pages,
                }

        return {
            "allowed": limits.allows_pages(current_count),
            "currentPages": current_count,
            "maxPages": limits.max_pages,
        }
