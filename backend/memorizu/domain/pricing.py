"""
Publication Pricing

Singleton pricing config for the one-time page publication fee.
"""

from pydantic import BaseModel, Field


class PublicationPricing(BaseModel):
    """Stored at config/publication."""
    price: float = Field(..., gt=0, description="Fee in major currency units")
    currency: str = Field(..., min_length=3, max_length=3)
    description: str = Field(..., min_length=1)

    @property
    def unit_amount(self) -> int:
        """Fee in minor units (cents) as Stripe expects it."""
        return round(self.price * 100)


DEFAULT_PUBLICATION_PRICING = PublicationPricing(
    price=1.0,
    currency="brl",
    description="Page Publication Fee",
)
