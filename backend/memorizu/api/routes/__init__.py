# API Routes Module
from memorizu.api.routes import (
    stripe_payments,
    webhooks,
    payment,
    publication,
    subscription,
    pages,
    admin,
    debug,
)

__all__ = [
    "stripe_payments",
    "webhooks",
    "payment",
    "publication",
    "subscription",
    "pages",
    "admin",
    "debug",
]
