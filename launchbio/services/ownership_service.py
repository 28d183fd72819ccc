"""
Garde d'autorisation des mutations de page.

- page sans propriétaire : le jeton d'édition suffit
- page avec propriétaire : seul cet utilisateur peut la modifier, même avec le jeton
- thème ou champ Launch Pack sur une page gratuite : refusé dans tous les cas
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from launchbio.core.errors import NotFound, ProUpgradeRequired, Unauthorized
from launchbio.models.page import Page
from launchbio.models.user import User
from launchbio.schemas.page import PageForm

logger = logging.getLogger(__name__)

PRO_THEME_MESSAGE = "PRO themes require Launch Pack upgrade"
PRO_FIELD_MESSAGE = "Launch Pack required for this option"


def get_page_by_edit_token(db: Session, edit_token: str) -> Optional[Page]:
    return db.query(Page).filter(Page.edit_token == edit_token).first()


def authorize_page_access(db: Session, edit_token: str, current_user: Optional[User]) -> Page:
    page = get_page_by_edit_token(db, edit_token)
    if not page:
        raise NotFound("Page not found")

    if page.owner_id is not None:
        # même message connecté ou non : on ne révèle pas qui possède la page
        if current_user is None or current_user.id != page.owner_id:
            logger.info(f"Rejected access to page {page.id} by user {current_user.id if current_user else None}")
            raise Unauthorized()

    return page


def ensure_pro_features(is_pro: bool, form: PageForm) -> None:
    if is_pro:
        return
    if form.uses_pro_theme():
        raise ProUpgradeRequired(PRO_THEME_MESSAGE)
    if form.pro_fields():
        raise ProUpgradeRequired(PRO_FIELD_MESSAGE)


def authorize_page_mutation(db: Session, edit_token: str, current_user: Optional[User], form: PageForm) -> Page:
    page = authorize_page_access(db, edit_token, current_user)
    ensure_pro_features(page.is_pro, form)
    return page
