"""Schémas des pages : formulaire de création/édition et vues"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import List, Literal, Optional, Union

# Thèmes
FREE_THEMES = ("dark-gradient", "purple-glow", "light-clean", "sunset")
PRO_THEMES = ("ocean-blue", "midnight-neon", "forest-mist", "golden-hour")
ALL_THEMES = FREE_THEMES + PRO_THEMES

MAX_BUTTONS = 2


class PageButton(BaseModel):
    label: str = Field(min_length=1)
    url: str = Field(min_length=1)


class PageForm(BaseModel):
    """Formulaire de page tel que soumis par le client (noms de champs camelCase)"""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=2)
    description: Optional[str] = None
    event_date: str = Field(alias="eventDate", min_length=4)
    event_time: str = Field(alias="eventTime", min_length=2)
    bg_type: str = Field(alias="bgType")
    buttons: List[PageButton] = Field(min_length=1, max_length=MAX_BUTTONS)
    owner_email: Optional[Union[EmailStr, Literal[""]]] = Field(None, alias="ownerEmail")
    after_launch_text: Optional[str] = Field(None, alias="afterLaunchText")
    analytics_id: Optional[str] = Field(None, alias="analyticsId")
    show_branding: Optional[bool] = Field(None, alias="showBranding")

    @field_validator("bg_type")
    @classmethod
    def known_theme(cls, value: str) -> str:
        if value not in ALL_THEMES:
            raise ValueError(f"Unknown background '{value}'")
        return value

    def uses_pro_theme(self) -> bool:
        return self.bg_type in PRO_THEMES

    def pro_fields(self) -> List[str]:
        """Champs réservés au Launch Pack remplis dans ce formulaire"""
        fields = []
        if self.after_launch_text:
            fields.append("afterLaunchText")
        if self.analytics_id:
            fields.append("analyticsId")
        return fields


class PageCreatedResponse(BaseModel):
    slug: str
    editToken: str


class PublicPageResponse(BaseModel):
    slug: str
    title: str
    description: Optional[str]
    event_datetime: datetime
    bg_type: str
    buttons: List[PageButton]
    after_launch_text: Optional[str]
    analytics_id: Optional[str]
    show_branding: bool
    is_pro: bool

    model_config = ConfigDict(from_attributes=True)


class PageResponse(PublicPageResponse):
    id: int
    edit_token: str
    owner_id: Optional[int]
    owner_email: Optional[str]
    views: int
    created_at: datetime
    updated_at: datetime
