"""
Subscription Limit Routes

Read-only plan checks used by the dashboard and builder guards.
"""

from fastapi import APIRouter, Query

from memorizu.api.dependencies import AuthUidDep, LimitServiceDep, authorize_user
from memorizu.api.schemas import LimitsResponse, PageLimitResponse
from memorizu.domain.subscription import get_plan_limits


router = APIRouter()


@router.get("/subscription/limits", response_model=LimitsResponse)
async def get_limits(
    limits: LimitServiceDep,
    auth_uid: AuthUidDep,
    user_id: str = Query(..., alias="userId", min_length=1),
):
    """Effective plan and its limits (lapsed plans report free)."""
    authorize_user(user_id, auth_uid)
    plan = await limits.get_effective_plan(user_id)
    return LimitsResponse(plan=plan.value, limits=get_plan_limits(plan))


@router.get("/subscription/page-limit", response_model=PageLimitResponse)
async def get_page_limit(
    limits: LimitServiceDep,
    auth_uid: AuthUidDep,
    user_id: str = Query(..., alias="userId", min_length=1),
):
    authorize_user(user_id, auth_uid)
    result = await limits.check_page_limit(user_id)
    return PageLimitResponse(
        allowed=result["allowed"],
        current_pages=result["currentPages"],
        max_pages=result["maxPages"],
    )
