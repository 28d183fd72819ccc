"""
Service de paiement Stripe - session de checkout et webhook.

La page ne passe en Pro qu'à la réception du webhook checkout.session.completed
(paiement "paid"). Stripe peut livrer le même événement plusieurs fois : le
passage en Pro est idempotent.
"""

import json
import logging
from typing import Any, Dict, Optional

import stripe
from sqlalchemy.orm import Session

from launchbio.core.config import Settings
from launchbio.core.errors import NotConfigured, NotFound, SignatureInvalid, Unauthorized
from launchbio.models.user import User
from launchbio.services.ownership_service import get_page_by_edit_token
from launchbio.services.page_service import mark_pro

logger = logging.getLogger(__name__)

PRODUCT_NAME = "Launch Pack (one-time)"
CURRENCY = "usd"
CHECKOUT_COMPLETED = "checkout.session.completed"


def create_provider_session(api_key: str, edit_token: str, origin: str, price_cents: int):
    """Appel Stripe : crée la session de checkout (mode paiement unique)"""
    return stripe.checkout.Session.create(
        api_key=api_key,
        mode="payment",
        line_items=[{
            "quantity": 1,
            "price_data": {
                "currency": CURRENCY,
                "unit_amount": price_cents,
                "product_data": {"name": PRODUCT_NAME},
            },
        }],
        metadata={"editToken": edit_token},
        success_url=f"{origin}/edit/success?editToken={edit_token}",
        cancel_url=f"{origin}/edit/{edit_token}",
    )


def start_checkout(db: Session, settings: Settings, current_user: Optional[User], edit_token: str, origin: str) -> Dict[str, str]:
    if current_user is None:
        raise Unauthorized("Sign in to upgrade to Pro")
    if not settings.STRIPE_SECRET_KEY:
        raise NotConfigured("Stripe is not configured")

    page = get_page_by_edit_token(db, edit_token)
    if not page:
        raise NotFound("Page not found")

    session = create_provider_session(settings.STRIPE_SECRET_KEY, edit_token, origin, settings.LAUNCH_PACK_PRICE_CENTS)
    logger.info(f"Checkout started for page {page.slug} by user {current_user.id}")
    return {"url": session.url}


def verify_webhook(payload: bytes, signature: str, secret: str) -> Dict[str, Any]:
    """Vérifie la signature Stripe-Signature sur le corps brut puis décode l'événement"""
    try:
        text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        stripe.WebhookSignature.verify_header(text, signature, secret)
        event = json.loads(text)
    except stripe.SignatureVerificationError as e:
        raise SignatureInvalid(str(e))
    except ValueError as e:
        raise SignatureInvalid(f"Invalid payload: {e}")

    if not isinstance(event, dict):
        raise SignatureInvalid("Invalid payload")
    return event


def handle_webhook_event(db: Session, event: Dict[str, Any]) -> None:
    """Traite un événement vérifié. Les erreurs de base remontent (=> 500, Stripe relance)."""
    event_type = event.get("type")
    logger.info(f"Webhook event received: {event_type} (id: {event.get('id')})")
    if event_type != CHECKOUT_COMPLETED:
        return

    session = (event.get("data") or {}).get("object") or {}
    edit_token = (session.get("metadata") or {}).get("editToken")
    if session.get("payment_status") != "paid" or not edit_token:
        return

    page = get_page_by_edit_token(db, edit_token)
    if page is None:
        # rien à relancer : la page n'apparaîtra jamais
        logger.warning(f"Page not found for editToken: {edit_token}")
        return
    if page.is_pro:
        logger.info(f"Page {page.slug} is already Pro")
        return

    mark_pro(db, edit_token)
    logger.info(f"Page {page.slug} upgraded to Pro via webhook")
