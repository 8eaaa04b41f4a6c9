"""
Stripe Webhook Handler

Both endpoints verify the Stripe-Signature header before anything is
processed, then hand the event to the WebhookDispatcher.

Responses:
- 400: signature missing or invalid (nothing processed)
- 500: a handler failed after verification, so Stripe retries
- 200 {"received": true}: processed, or an event type we ignore
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from memorizu.api.dependencies import StripeDep, WebhookDispatcherDep
from memorizu.api.schemas import WebhookResponse
from memorizu.infrastructure.payments.stripe_service import StripeService
from memorizu.services.webhook_service import WebhookDispatcher


logger = logging.getLogger(__name__)

router = APIRouter()


async def _process_webhook(
    request: Request,
    stripe_service: StripeService,
    dispatcher: WebhookDispatcher,
    publication: bool,
):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    # WebhookSignatureError maps to 400 in the app exception handlers
    event = stripe_service.verify_webhook_signature(
        payload, signature, publication=publication
    )

    try:
        await dispatcher.dispatch(event)
    except Exception as e:
        logger.exception(f"Error handling webhook {event.get('type')} ({event.get('id')}): {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Webhook handler failed"},
        )

    return WebhookResponse()


@router.post("/stripe/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_service: StripeDep,
    dispatcher: WebhookDispatcherDep,
):
    """Subscription and payment events from the main Stripe endpoint."""
    return await _process_webhook(request, stripe_service, dispatcher, publication=False)


@router.post("/stripe/publication-webhook", response_model=WebhookResponse)
async def publication_webhook(
    request: Request,
    stripe_service: StripeDep,
    dispatcher: WebhookDispatcherDep,
):
    """Publication payment events, verified with the publication endpoint secret."""
    return await _process_webhook(request, stripe_service, dispatcher, publication=True)
