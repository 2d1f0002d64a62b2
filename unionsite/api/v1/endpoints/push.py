from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
from typing import Any, Dict, Optional

from unionsite.core.database import get_db
from unionsite.core.logging_config import logger
from unionsite.models.push import PushSubscription
from unionsite.schemas.push import (
    PushSubscribeRequest,
    PushUnsubscribeRequest,
    QuietHours,
    QuietHoursUpdate,
    PushResult,
)
from unionsite.services.push_service import push_service
from unionsite.modules.auth.dependencies import (
    Principal,
    get_current_admin,
    get_optional_principal,
)

router = APIRouter()


async def _find(db: AsyncSession, endpoint: str) -> Optional[PushSubscription]:
    result = await db.execute(select(PushSubscription).where(PushSubscription.endpoint == endpoint))
    return result.scalar_one_or_none()


@router.post("/subscribe")
async def subscribe(
    body: PushSubscribeRequest,
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Store or refresh a subscription (upsert by endpoint)"""
    subscription = await _find(db, body.endpoint)
    if subscription is None:
        subscription = PushSubscription(endpoint=body.endpoint)
        db.add(subscription)

    subscription.p256dh = body.keys.p256dh
    subscription.auth = body.keys.auth
    subscription.is_pwa = body.is_pwa
    subscription.display_mode = body.display_mode
    subscription.platform = body.platform
    subscription.last_seen_at = datetime.utcnow()
    if principal is not None:
        subscription.user_id = principal.user_id
        subscription.email = principal.email
        subscription.is_admin = principal.is_admin

    await db.commit()
    logger.info(
        f"[Push] Subscription stored (admin={bool(subscription.is_admin)})",
        extra={"push_platform": body.platform},
    )
    return {"ok": True, "is_admin": bool(subscription.is_admin)}


@router.post("/unsubscribe")
async def unsubscribe(body: PushUnsubscribeRequest, db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    subscription = await _find(db, body.endpoint)
    if subscription is not None:
        await db.delete(subscription)
        await db.commit()
    return {"ok": True, "removed": subscription is not None}


@router.get("/status")
async def subscription_status(
    endpoint: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Whether the server still has this endpoint"""
    subscription = await _find(db, endpoint)
    return {
        "ok": True,
        "exists": subscription is not None,
        "row": subscription.to_dict() if subscription else None,
    }


@router.get("/quiet-hours", response_model=QuietHours)
async def get_quiet_hours(
    admin: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    row = await push_service.get_quiet_hours(db)
    await db.commit()
    return QuietHours(quiet_enabled=row.quiet_enabled, quiet_start=row.quiet_start, quiet_end=row.quiet_end)


@router.post("/quiet-hours", response_model=QuietHours)
async def update_quiet_hours(
    body: QuietHoursUpdate,
    admin: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Update the window; malformed HH:MM values fall back to the defaults"""
    row = await push_service.update_quiet_hours(
        db,
        quiet_enabled=body.quiet_enabled,
        quiet_start=body.quiet_start,
        quiet_end=body.quiet_end,
    )
    await db.commit()
    logger.info(f"[Push] Quiet hours: enabled={row.quiet_enabled} {row.quiet_start}-{row.quiet_end}")
    return QuietHours(quiet_enabled=row.quiet_enabled, quiet_start=row.quiet_start, quiet_end=row.quiet_end)


@router.post("/test", response_model=PushResult)
async def send_test(
    message: str = Body("테스트 알림입니다.", embed=True),
    admin: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Send a test notification to every subscription"""
    result = await push_service.send_test(db, message)
    await db.commit()
    return PushResult(**result)
