"""Page model"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON
from datetime import datetime
from launchbio.core.database import Base


class Page(Base):
    __tablename__ = "pages"
    
    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String, unique=True, nullable=False, index=True)
    edit_token = Column(String, unique=True, nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    owner_email = Column(String, nullable=True)
    
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    event_datetime = Column(DateTime, nullable=False)
    bg_type = Column(String, nullable=False, default="dark-gradient")
    buttons = Column(JSON, nullable=False, default=list)  # [{label, url}], 1 à 2 entrées
    
    # Options Launch Pack
    after_launch_text = Column(String, nullable=True)
    analytics_id = Column(String, nullable=True)
    show_branding = Column(Boolean, nullable=False, default=True)
    is_pro = Column(Boolean, nullable=False, default=False)
    
    views = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
