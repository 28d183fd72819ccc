from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional

from launchbio.core.database import get_db
from launchbio.core.dependencies import get_current_user, require_user
from launchbio.models.user import User
from launchbio.schemas.page import PageForm, PageCreatedResponse, PageResponse, PublicPageResponse
from launchbio.services.ownership_service import authorize_page_access, get_page_by_edit_token
from launchbio.services.page_service import (
    create_page,
    get_page_by_slug,
    list_user_pages,
    parse_page_form,
    update_page
)
from launchbio.services.render_cache import public_path, render_cache

router = APIRouter(tags=["pages"])


async def read_page_form(request: Request) -> PageForm:
    """Dépendance : formulaire multipart/urlencoded -> PageForm validé"""
    form = await request.form()
    return parse_page_form(form)


# Crée une page (anonyme autorisé)
@router.post("/pages", response_model=PageCreatedResponse, status_code=status.HTTP_201_CREATED)
def create(
    form: PageForm = Depends(read_page_form),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user)
):
    page = create_page(db, form, current_user)
    return {"slug": page.slug, "editToken": page.edit_token}


@router.put("/pages/{edit_token}", response_model=PageResponse)
def update(
    edit_token: str,
    form: PageForm = Depends(read_page_form),
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user)
):
    return update_page(db, edit_token, form, current_user)


@router.get("/u/{slug}", response_model=PublicPageResponse)
def public_page(slug: str, db: Session = Depends(get_db)):
    return render_cache.get_or_render(
        public_path(slug),
        lambda: PublicPageResponse.model_validate(get_page_by_slug(db, slug)).model_dump(mode="json")
    )


# Déclarée avant /edit/{edit_token}
@router.get("/edit/success")
def checkout_success(editToken: Optional[str] = None, db: Session = Depends(get_db)):
    """Retour de Stripe : résumé de la page. Le passage en Pro se fait par le webhook."""
    page = get_page_by_edit_token(db, editToken) if editToken else None
    if not page:
        return {"page": None}
    return {
        "page": {
            "title": page.title,
            "slug": page.slug,
            "editToken": page.edit_token,
            "isPro": page.is_pro
        }
    }


@router.get("/edit/{edit_token}", response_model=PageResponse)
def edit_page(
    edit_token: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user)
):
    # rendu propre au propriétaire, toujours lu en base (compteur de vues à jour)
    return authorize_page_access(db, edit_token, current_user)


@router.get("/dashboard", response_model=List[PageResponse])
def dashboard(db: Session = Depends(get_db), current_user: User = Depends(require_user)):
    # Pages de l'utilisateur, les plus récentes d'abord
    return list_user_pages(db, current_user.id)
