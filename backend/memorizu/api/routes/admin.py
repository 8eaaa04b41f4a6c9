"""
Admin Routes for Publication Pricing

Protected by API key authentication (X-Admin-Key header).
"""

import logging

from fastapi import APIRouter, Depends

from memorizu.api.dependencies import PricingServiceDep, verify_admin_api_key
from memorizu.api.schemas import PricingUpdateResponse
from memorizu.domain.pricing import PublicationPricing


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_api_key)],
)


@router.post("/init-pricing", response_model=PricingUpdateResponse)
async def init_pricing(pricing: PricingServiceDep):
    """Write the default publication pricing to the config document."""
    stored = await pricing.init_pricing()
    logger.info(f"Publication pricing initialized: {stored.price} {stored.currency}")
    return PricingUpdateResponse(
        success=True,
        message="Pricing initialized successfully",
        pricing=stored,
    )


@router.put("/pricing", response_model=PricingUpdateResponse)
async def update_pricing(request: PublicationPricing, pricing: PricingServiceDep):
    stored = await pricing.init_pricing(request)
    logger.info(f"Publication pricing updated: {stored.price} {stored.currency}")
    return PricingUpdateResponse(success=True, pricing=stored)
