from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict

from unionsite.core.database import get_db
from unionsite.core.logging_config import logger
from unionsite.models.site_setting import SiteSetting, MAIN_SETTINGS_ID
from unionsite.modules.auth.dependencies import Principal, get_current_admin

router = APIRouter()


@router.get("")
async def get_settings(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    """Stored settings document; empty when nothing was saved yet"""
    row = await db.get(SiteSetting, MAIN_SETTINGS_ID)
    return dict(row.data or {}) if row else {}


@router.put("")
async def update_settings(
    data: Dict[str, Any] = Body(...),
    admin: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """
    Merge the body over the stored document, so keys written by another
    client and missing here survive.
    """
    row = await db.get(SiteSetting, MAIN_SETTINGS_ID)
    if row is None:
        row = SiteSetting(id=MAIN_SETTINGS_ID, data={})
        db.add(row)

    # New dict so the JSON column registers the change
    row.data = {**(row.data or {}), **data}
    await db.commit()

    logger.info(f"[Settings] Updated keys: {', '.join(sorted(data))}")
    return dict(row.data)
