from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Any, Dict, List

from unionclient.models import now_iso
from unionsite.core.database import get_db
from unionsite.core.exceptions import AuthorizationError, MemberNotFoundError
from unionsite.core.logging_config import logger
from unionsite.models.member import Member
from unionsite.models.user import User
from unionsite.schemas.member import MemberUpsert
from unionsite.services.push_service import push_service
from unionsite.modules.auth.dependencies import (
    Principal,
    get_current_admin,
    get_current_principal,
)

router = APIRouter()


def _check_self_or_admin(member_id: str, principal: Principal) -> None:
    if not principal.is_admin and principal.user_id != member_id:
        raise AuthorizationError("Only the member or an admin can access this record")


@router.get("")
async def list_members(
    admin: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
) -> List[Dict[str, Any]]:
    """All applications and members, newest first"""
    result = await db.execute(select(Member).order_by(Member.created_at.desc()))
    return [member.to_dict() for member in result.scalars().all()]


@router.get("/{member_id}")
async def get_member(
    member_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    _check_self_or_admin(member_id, principal)
    member = await db.get(Member, member_id)
    if member is None:
        raise MemberNotFoundError(member_id)
    return member.to_dict()


@router.put("/{member_id}")
async def upsert_member(
    member_id: str,
    body: MemberUpsert,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """
    Store a membership application (the account holder) or update one
    (admin, e.g. approval). Only admins can change the approval flag.
    """
    _check_self_or_admin(member_id, principal)

    member = await db.get(Member, member_id)
    created = member is None
    if created:
        member = Member(id=member_id, created_at=body.signup_date or now_iso(), is_approved=False)
        db.add(member)

    member.name = body.name
    member.birth_date = body.birth_date
    member.phone = body.phone
    member.email = body.email
    member.garage = body.garage
    if body.login_id is not None:
        member.login_id = body.login_id
    if principal.is_admin:
        if not member.is_approved and body.is_approved:
            logger.info(f"[Members] Approved {member.name}", extra={"member_id": member_id})
        member.is_approved = body.is_approved

    await db.commit()
    await db.refresh(member)

    if created:
        logger.info(f"[Members] New application from {member.name}", extra={"member_id": member_id})
        await push_service.notify_admin_signup(db, member)
        await db.commit()

    return member.to_dict()


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(
    member_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Self: withdrawal, removes the profile and the login account and tells
    the admins. Admin: removes the profile.
    """
    _check_self_or_admin(member_id, principal)

    member = await db.get(Member, member_id)
    if member is None:
        raise MemberNotFoundError(member_id)

    withdrawal = principal.user_id == member_id

    await db.delete(member)
    if withdrawal:
        account = await db.get(User, member_id)
        if account is not None:
            await db.delete(account)
    await db.commit()

    if withdrawal:
        logger.info(f"[Members] {member_id} withdrew", extra={"member_id": member_id})
        await push_service.notify_admin_withdraw(db, member)
        await db.commit()
    else:
        logger.info(f"[Members] Removed {member_id} by admin", extra={"member_id": member_id})

    return Response(status_code=status.HTTP_204_NO_CONTENT)
