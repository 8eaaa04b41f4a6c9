"""
Publication Pricing Routes
"""

from fastapi import APIRouter

from memorizu.api.dependencies import PricingServiceDep
from memorizu.domain.pricing import PublicationPricing


router = APIRouter()


@router.get("/publication/pricing", response_model=PublicationPricing)
async def get_publication_pricing(pricing: PricingServiceDep):
    """Current publication fee (the default until an admin initializes it)."""
    return await pricing.get_pricing()
