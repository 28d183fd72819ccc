from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from launchbio.core.config import Settings, get_settings
from launchbio.core.database import get_db
from launchbio.core.errors import Unauthorized
from launchbio.models.user import User
from launchbio.services.auth_service import AuthService


def get_auth_service(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> AuthService:
    return AuthService(db, settings)


def get_current_user(
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service)
) -> Optional[User]:
    # Jamais d'erreur : None si pas de session ou session expirée
    current_user = auth.get_current_user(request, response)
    # cookies posés pendant la résolution (ex. effacement d'une session expirée)
    request.state.pending_cookies = response.headers.getlist("set-cookie")
    return current_user


def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if current_user is None:
        raise Unauthorized()
    return current_user


def apply_pending_cookies(request: Request, response: Response) -> Response:
    """Recopie les cookies de session sur une réponse construite à la main (erreurs, JSONResponse)"""
    for cookie in getattr(request.state, "pending_cookies", []):
        response.headers.append("set-cookie", cookie)
    return response
