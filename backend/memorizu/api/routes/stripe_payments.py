"""
Stripe Payment Routes

Checkout sessions for plans and page publication, refunds, the billing
portal and a user's publication payment history.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Header, Query

from memorizu.api.dependencies import (
    AuthUidDep,
    CheckoutServiceDep,
    ReconciliationDep,
    RefundServiceDep,
    authorize_user,
)
from memorizu.api.schemas import (
    CheckoutResponse,
    PageRequest,
    PaymentsResponse,
    PortalRequest,
    PortalResponse,
    RefundRequest,
    RefundResponse,
    SubscriptionCheckoutRequest,
)


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Checkout Endpoints
# =============================================================================

@router.post("/stripe/checkout", response_model=CheckoutResponse)
async def create_subscription_checkout(
    request: SubscriptionCheckoutRequest,
    checkout: CheckoutServiceDep,
    auth_uid: AuthUidDep,
    origin: Optional[str] = Header(None),
):
    """Start a Stripe Checkout session for a recurring plan."""
    authorize_user(request.user_id, auth_uid)

    result = await checkout.create_subscription_checkout(
        request.user_id, request.price_id, origin
    )
    logger.info(f"Created subscription checkout {result.session_id} for {request.user_id}")
    return CheckoutResponse(session_id=result.session_id, url=result.url)


@router.post("/stripe/publish-payment", response_model=CheckoutResponse)
async def create_publication_checkout(
    request: PageRequest,
    checkout: CheckoutServiceDep,
    auth_uid: AuthUidDep,
    origin: Optional[str] = Header(None),
):
    """
    Start a one-time publication fee checkout for a page.

    The page is not touched here; it is published once Stripe confirms the
    payment.
    """
    authorize_user(request.user_id, auth_uid)

    result = await checkout.create_publication_checkout(
        request.user_id, request.page_id, origin
    )
    logger.info(
        f"Created publication checkout {result.session_id} "
        f"for page {request.user_id}/{request.page_id}"
    )
    return CheckoutResponse(session_id=result.session_id, url=result.url)


# =============================================================================
# Refunds
# =============================================================================

@router.post("/stripe/refund", response_model=RefundResponse)
async def refund_publication(
    request: RefundRequest,
    refunds: RefundServiceDep,
    auth_uid: AuthUidDep,
):
    authorize_user(request.user_id, auth_uid)

    result = await refunds.refund_page(
        request.user_id,
        request.page_id,
        request.payment_intent_id,
        request.reason,
    )
    return RefundResponse(
        success=result["success"],
        refund_id=result["refundId"],
        amount=result["amount"],
    )


# =============================================================================
# Billing Portal and History
# =============================================================================

@router.post("/stripe/portal", response_model=PortalResponse)
async def create_portal_session(
    request: PortalRequest,
    checkout: CheckoutServiceDep,
    auth_uid: AuthUidDep,
    origin: Optional[str] = Header(None),
):
    """Stripe Customer Portal for managing a subscription."""
    authorize_user(request.user_id, auth_uid)
    url = await checkout.create_portal_session(request.user_id, origin)
    return PortalResponse(url=url)


@router.get("/stripe/payments", response_model=PaymentsResponse)
async def list_publication_payments(
    reconciler: ReconciliationDep,
    auth_uid: AuthUidDep,
    user_id: str = Query(..., alias="userId", min_length=1),
):
    authorize_user(user_id, auth_uid)
    payments = await reconciler.list_publication_payments(user_id)
    return PaymentsResponse(payments=payments)
