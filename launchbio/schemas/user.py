from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

class CredentialsRequest(BaseModel):
    # normalisé (trim + minuscules) par le router, pas par le schéma
    email: str = ""
    password: str = ""
    returnTo: Optional[str] = None

class UserResponse(BaseModel):
    id: int
    email: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class AuthResponse(BaseModel):
    user: UserResponse
    returnTo: str

class CurrentUserResponse(BaseModel):
    user: Optional[UserResponse] = None
