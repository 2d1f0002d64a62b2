from pydantic import BaseModel, Field
from typing import Optional


class PushKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: PushKeys
    is_pwa: bool = False
    display_mode: Optional[str] = None
    platform: Optional[str] = None


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)


class QuietHours(BaseModel):
    quiet_enabled: bool = False
    quiet_start: str = "22:00"
    quiet_end: str = "09:00"


class QuietHoursUpdate(BaseModel):
    quiet_enabled: Optional[bool] = None
    quiet_start: Optional[str] = None
    quiet_end: Optional[str] = None


class PushResult(BaseModel):
    ok: bool = True
    sent: int = 0
    failed: int = 0
    removed: int = 0
    skipped: Optional[str] = None
