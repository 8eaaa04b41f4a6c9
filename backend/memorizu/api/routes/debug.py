"""
Debug Routes for Stuck Publications

Operator tools for pages whose payment went through but never published.
Protected by the same X-Admin-Key as the admin routes.

- force-publish: MANUAL_OVERRIDE without checking Stripe
- quick-fix: try the reconciler first, override only if it finds nothing
- page-status: payment and publish fields of a page
"""

import logging

from fastapi import APIRouter, Depends, Query

from memorizu.api.dependencies import (
    PublicationDep,
    ReconciliationDep,
    verify_admin_api_key,
)
from memorizu.api.schemas import (
    ForcePublishRequest,
    ForcePublishResponse,
    PageRequest,
    PageStatusResponse,
    QuickFixResponse,
)
from memorizu.domain.page import Page, PublicationTransition
from memorizu.infrastructure.exceptions import NotFoundError


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/debug",
    tags=["Debug"],
    dependencies=[Depends(verify_admin_api_key)],
)


def _status_of(page: Page) -> PageStatusResponse:
    return PageStatusResponse(
        id=page.id,
        published=page.published,
        payment_status=page.payment_status.value,
        payment_intent_id=page.payment_intent_id,
        published_url=page.published_url,
        custom_slug=page.custom_slug,
        paid_at=page.paid_at,
        published_at=page.published_at,
        refunded_at=page.refunded_at,
        recovered_at=page.recovered_at,
        disputed_at=page.disputed_at,
    )


@router.post("/force-publish", response_model=ForcePublishResponse)
async def force_publish(request: ForcePublishRequest, publication: PublicationDep):
    """Mark a page paid and published without a payment check."""
    logger.warning(
        f"Manual override publishing page {request.user_id}/{request.page_id}"
    )
    page = await publication.transition(
        request.user_id,
        request.page_id,
        PublicationTransition.MANUAL_OVERRIDE,
        payment_intent_id=request.payment_intent_id,
    )
    return ForcePublishResponse(
        success=True,
        message="Page published successfully",
        page_id=request.page_id,
        published_url=page.published_url,
    )


@router.post("/quick-fix", response_model=QuickFixResponse)
async def quick_fix(
    request: PageRequest,
    reconciler: ReconciliationDep,
    publication: PublicationDep,
):
    """
    Publish a stuck page, preferring a verified charge over an override.

    method is "reconciled" when Stripe had a matching charge and
    "manual-override" otherwise.
    """
    try:
        result = await reconciler.verify_and_publish(request.user_id, request.page_id)
        return QuickFixResponse(success=True, method="reconciled", page=result["page"])
    except NotFoundError as e:
        logger.warning(
            f"Reconciliation found nothing for {request.user_id}/{request.page_id} "
            f"({e.message}), applying manual override"
        )

    page = await publication.transition(
        request.user_id,
        request.page_id,
        PublicationTransition.MANUAL_OVERRIDE,
    )
    return QuickFixResponse(
        success=True,
        method="manual-override",
        page=_status_of(page).model_dump(by_alias=True),
    )


@router.get("/page-status", response_model=PageStatusResponse)
async def page_status(
    publication: PublicationDep,
    user_id: str = Query(..., alias="userId", min_length=1),
    page_id: str = Query(..., alias="pageId", min_length=1),
):
    page = await publication.get_page(user_id, page_id)
    return _status_of(page)
