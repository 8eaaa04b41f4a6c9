"""
Payment Verification Routes

Client-triggered recovery for publication payments whose webhook was lost.
"""

import logging

from fastapi import APIRouter

from memorizu.api.dependencies import AuthUidDep, ReconciliationDep, authorize_user
from memorizu.api.schemas import PageRequest


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/payment/verify-and-publish")
async def verify_and_publish(
    request: PageRequest,
    reconciler: ReconciliationDep,
    auth_uid: AuthUidDep,
):
    """
    Publish a page if Stripe has a succeeded charge for it.

    404 when the user has no Stripe customer or no matching charge exists.
    """
    authorize_user(request.user_id, auth_uid)
    return await reconciler.verify_and_publish(request.user_id, request.page_id)
