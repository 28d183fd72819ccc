"""
Routes JSON appelées par le navigateur et par Stripe.

Chaque route garde son propre format de réponse ({error}, {ok}, {received}).
"""

import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchbio.core.config import Settings, get_settings
from launchbio.core.database import get_db
from launchbio.core.dependencies import apply_pending_cookies, get_current_user
from launchbio.core.errors import LaunchBioError, SignatureInvalid
from launchbio.models.user import User
from launchbio.schemas.checkout import CheckoutResponse, EditTokenRequest, SlugRequest
from launchbio.services.checkout_service import handle_webhook_event, start_checkout, verify_webhook
from launchbio.services.page_service import increment_views, revalidate_page

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])


@router.post("/checkout", response_model=CheckoutResponse)
def checkout(
    body: EditTokenRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: Optional[User] = Depends(get_current_user)
):
    if not body.editToken:
        return apply_pending_cookies(request, JSONResponse({"error": "No token"}, status_code=400))

    # sans en-tête Origin : URL de l'API elle-même (Stripe exige des URLs absolues)
    origin = request.headers.get("origin") or str(request.base_url).rstrip("/")
    try:
        return start_checkout(db, settings, current_user, body.editToken, origin)
    except LaunchBioError as e:
        logger.warning(f"Checkout refused: {e.message}")
        return apply_pending_cookies(request, JSONResponse({"error": e.message}, status_code=500))
    except stripe.StripeError as e:
        logger.error(f"Stripe error creating checkout: {e}")
        return apply_pending_cookies(
            request, JSONResponse({"error": e.user_message or "Checkout failed"}, status_code=500)
        )


@router.post("/views")
def views(body: SlugRequest, db: Session = Depends(get_db)):
    if not body.slug:
        return JSONResponse({"ok": False}, status_code=400)
    try:
        increment_views(db, body.slug)
    except (LaunchBioError, SQLAlchemyError) as e:
        db.rollback()
        logger.error(f"Could not increment views for {body.slug}: {e}")
        return JSONResponse({"ok": False}, status_code=500)
    return {"ok": True}


@router.post("/revalidate")
def revalidate(body: EditTokenRequest, db: Session = Depends(get_db)):
    if not body.editToken:
        return JSONResponse({"ok": False}, status_code=400)
    revalidate_page(db, body.editToken)
    return {"ok": True}


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured")
        return JSONResponse({"error": "Webhook secret not configured"}, status_code=500)

    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        return JSONResponse({"error": "Missing stripe-signature header"}, status_code=400)

    try:
        event = verify_webhook(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except SignatureInvalid as e:
        logger.error(f"Webhook signature verification failed: {e.message}")
        return JSONResponse({"error": f"Webhook Error: {e.message}"}, status_code=400)

    try:
        handle_webhook_event(db, event)
    except Exception:
        # 500 pour que Stripe relance la livraison
        db.rollback()
        logger.exception("Error processing webhook")
        return JSONResponse({"error": "Failed to process webhook"}, status_code=500)

    return {"received": True}
