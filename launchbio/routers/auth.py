from fastapi import APIRouter, Depends, Request, Response, status
from typing import Optional
from launchbio.core.dependencies import get_auth_service, get_current_user
from launchbio.core.errors import ValidationError
from launchbio.models.user import User
from launchbio.schemas.user import CredentialsRequest, AuthResponse, CurrentUserResponse
from launchbio.services.auth_service import AuthService, normalize_email, safe_return_to

router = APIRouter(prefix="/auth", tags=["auth"])

def read_credentials(credentials: CredentialsRequest):
    email = normalize_email(credentials.email)
    if not email or not credentials.password:
        raise ValidationError("Email and password are required")
    return email, credentials.password

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(credentials: CredentialsRequest, response: Response, auth: AuthService = Depends(get_auth_service)):
    """Créer un compte puis ouvrir une session"""
    email, password = read_credentials(credentials)
    auth.register(email, password)
    user = auth.sign_in(email, password, response)
    return {"user": user, "returnTo": safe_return_to(credentials.returnTo)}

@router.post("/login", response_model=AuthResponse)
def login(credentials: CredentialsRequest, response: Response, auth: AuthService = Depends(get_auth_service)):
    """Se connecter (pose le cookie lb_session)"""
    email, password = read_credentials(credentials)
    user = auth.sign_in(email, password, response)
    return {"user": user, "returnTo": safe_return_to(credentials.returnTo)}

@router.post("/logout")
def logout(request: Request, response: Response, auth: AuthService = Depends(get_auth_service)):
    auth.sign_out(request, response)
    return {"ok": True}

@router.get("/me", response_model=CurrentUserResponse)
def me(current_user: Optional[User] = Depends(get_current_user)):
    # 200 même sans session : user = null
    return {"user": current_user}
