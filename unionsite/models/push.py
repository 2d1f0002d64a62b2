from sqlalchemy import Column, String, DateTime, Integer, Text, Boolean
from datetime import datetime

from unionsite.core.database import Base

QUIET_HOURS_ROW_ID = 1


class PushSubscription(Base):
    """A browser push endpoint; upserted by endpoint"""
    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint = Column(Text, unique=True, nullable=False)
    p256dh = Column(Text, nullable=False)
    auth = Column(Text, nullable=False)

    # Client context reported at subscribe time
    is_pwa = Column(Boolean, default=False)
    display_mode = Column(String(32), nullable=True)
    platform = Column(String(64), nullable=True)
    email = Column(String(255), nullable=True)
    user_id = Column(String(36), nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "endpoint": self.endpoint,
            "is_pwa": bool(self.is_pwa),
            "display_mode": self.display_mode,
            "platform": self.platform,
            "email": self.email,
            "is_admin": bool(self.is_admin),
            "last_seen_at": self.last_seen_at.isoformat() if self.last_seen_at else None,
        }

    def __repr__(self):
        return f"<PushSubscription {self.id} admin={self.is_admin}>"


class PushSettings(Base):
    """Quiet-hours window, single row"""
    __tablename__ = "push_settings"

    id = Column(Integer, primary_key=True, default=QUIET_HOURS_ROW_ID)
    quiet_enabled = Column(Boolean, default=False, nullable=False)
    quiet_start = Column(String(5), default="22:00", nullable=False)
    quiet_end = Column(String(5), default="09:00", nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
