from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from unionsite.core.database import get_db
from unionsite.core.exceptions import AdminRequiredError, ApprovalPendingError
from unionsite.core.logging_config import set_user_id
from unionsite.core.security import ACCESS_TOKEN_TYPE, ADMIN_SUBJECT, decode_token
from unionsite.models.member import Member
from unionsite.models.user import User, UserRole

security = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """
    Whoever is calling.

    Admins reach the API either through an account listed in ADMIN_EMAILS
    or through the shared PIN gate; the latter has no account row.
    """
    role: UserRole
    user: Optional[User] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    @property
    def email(self) -> Optional[str]:
        return self.user.email if self.user else None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve(token: str, db: AsyncSession, request: Request) -> Principal:
    payload = decode_token(token)

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise _unauthorized("Invalid token type")

    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Invalid token payload")

    if subject == ADMIN_SUBJECT:
        request.state.user_id = ADMIN_SUBJECT
        set_user_id(ADMIN_SUBJECT)
        return Principal(role=UserRole.ADMIN)

    user = await db.get(User, subject)
    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    request.state.user_id = user.id
    set_user_id(user.id)
    return Principal(role=user.role, user=user)


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """Any valid access token"""
    if not credentials:
        raise _unauthorized("Not authenticated")
    return await _resolve(credentials.credentials, db, request)


async def get_optional_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[Principal]:
    """Principal when a token is sent, None for anonymous callers"""
    if not credentials:
        return None
    return await _resolve(credentials.credentials, db, request)


async def get_current_admin(
    principal: Principal = Depends(get_current_principal)
) -> Principal:
    """Admin token required"""
    if not principal.is_admin:
        raise AdminRequiredError()
    return principal


async def get_approved_writer(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
) -> Principal:
    """Admin, or a member whose application has been approved"""
    if principal.is_admin:
        return principal

    member = await db.get(Member, principal.user_id)
    if member is None or not member.is_approved:
        raise ApprovalPendingError()
    return principal
