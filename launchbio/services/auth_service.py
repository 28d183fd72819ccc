"""
Service d'authentification - inscription, connexion, session courante.

Deux systèmes de session coexistent :
- le jeton du fournisseur d'identité externe (JWT signé avec AUTH_SECRET)
- la session legacy (table sessions + cookie lb_session)
CurrentUserResolver les essaie dans cet ordre et renvoie toujours un User.
"""

import logging
from typing import List, Optional

from fastapi import Request, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from launchbio.core.config import Settings
from launchbio.core.errors import (
    DuplicateUser,
    InvalidCredentials,
    PersistenceFailure,
    Unauthorized,
    WeakPassword,
)
from launchbio.core.security import (
    EXTERNAL_SESSION_COOKIES,
    SESSION_COOKIE,
    decode_external_token,
)
from launchbio.models.user import User
from launchbio.services.session_service import SessionManager

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
EXTERNAL_ACCOUNT_MESSAGE = "This account uses Google sign-in. Please continue with Google."


def validate_password(password: str) -> Optional[str]:
    """
    Retourne le message de la première règle violée, ou None.

    Ordre : longueur → majuscule → minuscule → chiffre
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if not any(c.isupper() for c in password):
        return "Password must contain at least one uppercase letter"
    if not any(c.islower() for c in password):
        return "Password must contain at least one lowercase letter"
    if not any(c.isdigit() for c in password):
        return "Password must contain at least one number"
    return None


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def safe_return_to(return_to: Optional[str]) -> str:
    # seulement des chemins relatifs, pas de redirection vers un autre domaine
    if return_to and return_to.startswith("/") and not return_to.startswith("//"):
        return return_to
    return "/dashboard"


# ============ RÉSOLUTION DE L'UTILISATEUR COURANT ============

class ExternalSessionStrategy:
    """Session du fournisseur d'identité externe"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def find_user(self, request: Request, response: Response) -> Optional[User]:
        if not self.settings.AUTH_SECRET:
            return None

        for cookie_name in EXTERNAL_SESSION_COOKIES:
            token = request.cookies.get(cookie_name)
            if not token:
                continue
            user_id = decode_external_token(token, self.settings.AUTH_SECRET)
            if user_id is None:
                continue
            user = self.db.query(User).filter(User.id == user_id).first()
            if user:
                return user
        return None


class LegacySessionStrategy:
    """Session legacy par cookie lb_session"""

    def __init__(self, sessions: SessionManager):
        self.sessions = sessions

    def find_user(self, request: Request, response: Response) -> Optional[User]:
        return self.sessions.resolve(request.cookies.get(SESSION_COOKIE), response)


class CurrentUserResolver:

    def __init__(self, strategies: List):
        self.strategies = strategies

    def resolve(self, request: Request, response: Response) -> Optional[User]:
        for strategy in self.strategies:
            try:
                user = strategy.find_user(request, response)
            except SQLAlchemyError as e:
                logger.warning(f"{type(strategy).__name__} failed: {e}")
                continue
            if user is not None:
                return user
        return None


# ============ SERVICE ============

class AuthService:

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.sessions = SessionManager(db, settings)
        self.resolver = CurrentUserResolver([
            ExternalSessionStrategy(db, settings),
            LegacySessionStrategy(self.sessions),
        ])

    def register(self, email: str, password: str) -> User:
        # politique vérifiée avant tout accès à la base
        problem = validate_password(password)
        if problem:
            raise WeakPassword(problem)

        existing = self.db.query(User).filter(User.email == email).first()
        if existing:
            raise DuplicateUser()

        user = User(email=email)
        user.set_password(password)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # inscription concurrente avec le même email
            self.db.rollback()
            raise DuplicateUser()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not register {email}: {e}")
            raise PersistenceFailure()
        self.db.refresh(user)
        logger.info(f"Registered user {user.id}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            raise InvalidCredentials()
        if not user.password_hash:
            raise InvalidCredentials(EXTERNAL_ACCOUNT_MESSAGE)
        if not user.verify_password(password):
            raise InvalidCredentials()
        return user

    def sign_in(self, email: str, password: str, response: Response) -> User:
        user = self.authenticate(email, password)
        self.sessions.issue(user.id, response)
        return user

    def sign_out(self, request: Request, response: Response) -> None:
        self.sessions.revoke(request.cookies.get(SESSION_COOKIE), response)

    def get_current_user(self, request: Request, response: Response) -> Optional[User]:
        return self.resolver.resolve(request, response)

    def require_user(self, request: Request, response: Response) -> User:
        user = self.get_current_user(request, response)
        if user is None:
            raise Unauthorized()
        return user
