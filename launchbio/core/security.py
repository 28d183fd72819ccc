import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt

SESSION_COOKIE = "lb_session"

# Cookies posés par le fournisseur d'identité externe (variantes courantes)
EXTERNAL_SESSION_COOKIES = (
    "authjs.session-token",
    "__Secure-authjs.session-token",
    "next-auth.session-token",
    "__Secure-next-auth.session-token",
)

BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # hash corrompu ou dans un autre format
        return False


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def new_edit_token() -> str:
    return str(uuid.uuid4())


def create_external_token(user_id: int, secret: str, expires_in_minutes: int = 60) -> str:
    """Émet un jeton au format du fournisseur externe (utilisé par les outils de dev et les tests)"""
    payload = {
        "sub": str(user_id),
        "exp": datetime.utcnow() + timedelta(minutes=expires_in_minutes),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def decode_external_token(token: str, secret: str) -> Optional[int]:
    """Retourne l'id utilisateur porté par le jeton, ou None si invalide/expiré"""
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"])
    except JWTError:
        return None

    sub = payload.get("sub")
    if sub is None:
        return None
    try:
        return int(sub)
    except (TypeError, ValueError):
        return None
