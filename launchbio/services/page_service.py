"""Page service"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from launchbio.core.errors import NotFound, PersistenceFailure, ValidationError
from launchbio.core.security import new_edit_token
from launchbio.models.page import Page
from launchbio.models.user import User
from launchbio.schemas.page import PageForm
from launchbio.services.ownership_service import (
    authorize_page_mutation,
    ensure_pro_features,
    get_page_by_edit_token,
)
from launchbio.services.render_cache import revalidate_page_paths
from launchbio.services.slug_service import generate_slug

logger = logging.getLogger(__name__)

MAX_CREATE_ATTEMPTS = 5


# ============ FORMULAIRE ============

def parse_buttons(raw: Optional[str]) -> List[Any]:
    # JSON illisible = aucun bouton, rejeté ensuite par la validation (min 1)
    if not raw:
        return []
    try:
        buttons = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not decode buttons: {e}")
        return []
    return buttons if isinstance(buttons, list) else []


def parse_page_form(form: Mapping[str, Any]) -> PageForm:
    """Construit un PageForm validé depuis les champs bruts du formulaire"""
    data = {
        "title": form.get("title"),
        "description": form.get("description"),
        "eventDate": form.get("eventDate"),
        "eventTime": form.get("eventTime"),
        "bgType": form.get("bgType"),
        "buttons": parse_buttons(form.get("buttons")),
        "ownerEmail": form.get("ownerEmail"),
        "afterLaunchText": form.get("afterLaunchText"),
        "analyticsId": form.get("analyticsId"),
        # case à cocher : absente du formulaire quand elle est décochée
        "showBranding": form.get("showBranding") == "true",
    }

    try:
        return PageForm.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Invalid data", errors=errors)


def to_datetime(event_date: str, event_time: str) -> datetime:
    """Combine date + heure en horodatage UTC (naïf, comme le reste de la base)"""
    try:
        value = datetime.fromisoformat(f"{event_date}T{event_time}")
    except ValueError:
        raise ValidationError("Invalid data", errors=[
            {"field": "eventDate", "message": f"Invalid date/time '{event_date} {event_time}'"}
        ])
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============ LECTURE ============

def get_page_by_slug(db: Session, slug: str) -> Page:
    page = db.query(Page).filter(Page.slug == slug).first()
    if not page:
        raise NotFound("Page not found")
    return page


def list_user_pages(db: Session, user_id: int) -> List[Page]:
    return db.query(Page).filter(Page.owner_id == user_id).order_by(Page.created_at.desc(), Page.id.desc()).all()


# ============ MUTATIONS ============

def create_page(db: Session, form: PageForm, current_user: Optional[User]) -> Page:
    # une nouvelle page n'est jamais Pro
    ensure_pro_features(False, form)
    event_datetime = to_datetime(form.event_date, form.event_time)

    for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
        page = Page(
            slug=generate_slug(form.title),
            edit_token=new_edit_token(),
            title=form.title,
            description=form.description or None,
            event_datetime=event_datetime,
            bg_type=form.bg_type,
            buttons=[button.model_dump() for button in form.buttons],
            owner_email=form.owner_email or None,
            owner_id=current_user.id if current_user else None,
            show_branding=True,
            is_pro=False,
        )
        db.add(page)
        try:
            db.commit()
        except IntegrityError as e:
            # collision de slug ou de jeton : on régénère
            db.rollback()
            logger.warning(f"Page insert conflict (attempt {attempt}/{MAX_CREATE_ATTEMPTS}): {e}")
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Could not create page '{form.title}': {e}")
            raise PersistenceFailure()

        db.refresh(page)
        logger.info(f"Created page {page.slug} (owner={page.owner_id})")
        return page

    logger.error(f"Gave up creating page '{form.title}' after {MAX_CREATE_ATTEMPTS} attempts")
    raise PersistenceFailure()


def update_page(db: Session, edit_token: str, form: PageForm, current_user: Optional[User]) -> Page:
    page = authorize_page_mutation(db, edit_token, current_user, form)

    page.title = form.title
    page.description = form.description or None
    page.event_datetime = to_datetime(form.event_date, form.event_time)
    page.bg_type = form.bg_type
    page.buttons = [button.model_dump() for button in form.buttons]
    page.owner_email = form.owner_email or None
    page.after_launch_text = form.after_launch_text or None
    page.analytics_id = form.analytics_id or None
    # retirer le branding fait partie du Launch Pack
    if page.is_pro and form.show_branding is not None:
        page.show_branding = form.show_branding

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not update page {page.slug}: {e}")
        raise PersistenceFailure()

    db.refresh(page)
    revalidate_page_paths(page.slug, page.edit_token)
    return page


def increment_views(db: Session, slug: str) -> None:
    # UPDATE atomique : views = views + 1
    updated = db.query(Page).filter(Page.slug == slug).update(
        {Page.views: Page.views + 1}, synchronize_session=False
    )
    if not updated:
        db.rollback()
        raise NotFound("Page not found")
    db.commit()


def mark_pro(db: Session, edit_token: str) -> Optional[Page]:
    """
    Passe la page en Pro (et coupe le branding) une seule fois.

    Retourne la page, ou None si elle n'existe pas. Un second appel ne change rien.
    """
    page = get_page_by_edit_token(db, edit_token)
    if page is None:
        return None
    if page.is_pro:
        return page

    # la condition sur is_pro rend l'UPDATE sûr face à deux livraisons simultanées
    db.query(Page).filter(Page.edit_token == edit_token, Page.is_pro == False).update(
        {Page.is_pro: True, Page.show_branding: False}, synchronize_session=False
    )
    db.commit()
    db.refresh(page)

    revalidate_page_paths(page.slug, page.edit_token)
    return page


def revalidate_page(db: Session, edit_token: str) -> None:
    page = get_page_by_edit_token(db, edit_token)
    if not page:
        return
    revalidate_page_paths(page.slug, page.edit_token)
