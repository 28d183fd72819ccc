"""
Service de sessions legacy : jeton opaque stocké en base + cookie lb_session.

L'expiration est paresseuse : une session expirée est supprimée au moment où
on la lit. Un nettoyage global des sessions expirées est déclenché de temps
en temps (faible probabilité) lors d'une lecture.
"""

import logging
import random
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from launchbio.core.config import Settings
from launchbio.core.errors import PersistenceFailure
from launchbio.core.security import SESSION_COOKIE, new_session_token
from launchbio.models.session import UserSession
from launchbio.models.user import User

logger = logging.getLogger(__name__)


# ============ STORE ============

def create_session(db: Session, user_id: int, expires_at: datetime) -> UserSession:
    session = UserSession(token=new_session_token(), user_id=user_id, expires_at=expires_at)
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def find_session(db: Session, token: str) -> Optional[UserSession]:
    return db.query(UserSession).filter(UserSession.token == token).first()


def delete_session(db: Session, token: str) -> int:
    deleted = db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)
    db.commit()
    return deleted


def delete_expired_sessions(db: Session, now: Optional[datetime] = None) -> int:
    if now is None:
        now = datetime.utcnow()
    deleted = db.query(UserSession).filter(UserSession.expires_at <= now).delete(synchronize_session=False)
    db.commit()
    return deleted


# ============ MANAGER ============

class SessionManager:

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def issue(self, user_id: int, response: Response) -> str:
        """Crée une session de 30 jours et pose le cookie correspondant"""
        expires_at = datetime.utcnow() + timedelta(seconds=self.settings.session_ttl_seconds)
        try:
            session = create_session(self.db, user_id, expires_at)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not create session for user {user_id}: {e}")
            raise PersistenceFailure()

        response.set_cookie(
            SESSION_COOKIE,
            session.token,
            max_age=self.settings.session_ttl_seconds,
            path="/",
            httponly=True,
            samesite="lax",
            secure=self.settings.is_production,
        )
        return session.token

    def resolve(self, token: Optional[str], response: Response) -> Optional[User]:
        """Utilisateur de la session, ou None si absente/expirée (cookie effacé)"""
        if not token:
            return None

        self._maybe_cleanup()

        session = find_session(self.db, token)
        if session is None:
            self.clear_cookie(response)
            return None

        if session.is_expired():
            try:
                delete_session(self.db, token)
            except SQLAlchemyError as e:
                # la session reste expirée : elle sera supprimée à la prochaine lecture
                self.db.rollback()
                logger.warning(f"Could not delete expired session: {e}")
            self.clear_cookie(response)
            return None

        return session.user

    def revoke(self, token: Optional[str], response: Response) -> None:
        if token:
            delete_session(self.db, token)
        self.clear_cookie(response)

    def clear_cookie(self, response: Response) -> None:
        response.set_cookie(SESSION_COOKIE, "", max_age=0, path="/")

    def _maybe_cleanup(self) -> None:
        if random.random() >= self.settings.SESSION_CLEANUP_PROBABILITY:
            return
        try:
            deleted = delete_expired_sessions(self.db)
            if deleted:
                logger.info(f"Cleaned up {deleted} expired sessions")
        except SQLAlchemyError as e:
            # optimisation seulement : la lecture continue
            self.db.rollback()
            logger.warning(f"Expired session cleanup failed: {e}")
