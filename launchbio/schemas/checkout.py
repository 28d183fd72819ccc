from pydantic import BaseModel
from typing import Optional

# Les routes /checkout, /views, /revalidate acceptent un corps JSON partiel :
# le champ manquant est un 400, pas une 422.

class EditTokenRequest(BaseModel):
    editToken: Optional[str] = None

class SlugRequest(BaseModel):
    slug: Optional[str] = None

class CheckoutResponse(BaseModel):
    url: str
