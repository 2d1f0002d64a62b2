from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime

from unionsite.core.database import Base

MAIN_SETTINGS_ID = "main"


class SiteSetting(Base):
    """Site-wide settings document, one row keyed 'main'"""
    __tablename__ = "site_settings"

    id = Column(String(32), primary_key=True, default=MAIN_SETTINGS_ID)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<SiteSetting {self.id}>"
