from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime
from jose import JWTError, jwt

from unionsite.core.database import get_db
from unionsite.core.config import settings
from unionsite.core.exceptions import DuplicateEmailError
from unionsite.core.security import (
    RESET_TOKEN_TYPE,
    ADMIN_SUBJECT,
    verify_password,
    verify_admin_pin,
    get_password_hash,
    create_access_token,
    create_admin_token,
    create_reset_token,
)
from unionsite.core.logging_config import logger, set_user_id
from unionsite.core.rate_limiter import limiter
from unionsite.models.user import User, UserRole
from unionsite.schemas.auth import (
    UserSignup,
    UserLogin,
    AdminLogin,
    AuthResponse,
    SessionResponse,
    UserResponse,
    PasswordResetRequest,
    PasswordResetResponse,
    PasswordUpdateRequest,
)
from unionsite.modules.auth.dependencies import (
    Principal,
    get_current_principal,
    get_optional_principal,
)

router = APIRouter()


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, role=user.role.value)


def _issue_token(user: User) -> str:
    return create_access_token({
        "sub": user.id,
        "email": user.email,
        "role": user.role.value,
    })


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.SIGNUP_RATE_LIMIT)
async def signup(
    request: Request,
    user_data: UserSignup,
    db: AsyncSession = Depends(get_db)
):
    """
    Create a login account.

    The membership application itself is stored afterwards through
    PUT /members/{id} with the returned token.
    """
    email = user_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        logger.log_auth_event(event="signup", success=False, user_email=email, reason="Email taken")
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        hashed_password=get_password_hash(user_data.password),
        role=UserRole.ADMIN if settings.is_admin_email(email) else UserRole.MEMBER,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    set_user_id(user.id)
    logger.log_auth_event(event="signup", success=True, user_email=user.email)

    return AuthResponse(access_token=_issue_token(user), user=_user_response(user))


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with e-mail and password"""
    client_ip = request.client.host if request.client else "unknown"
    email = credentials.email.lower()

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=email,
            reason="Account inactive",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(user.id)
    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return AuthResponse(access_token=_issue_token(user), user=_user_response(user))


@router.post("/admin", response_model=AuthResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def admin_login(request: Request, body: AdminLogin):
    """Exchange the shared admin PIN for an admin token"""
    client_ip = request.client.host if request.client else "unknown"

    if not verify_admin_pin(body.pin):
        logger.log_auth_event(event="admin_login", success=False, reason="Wrong PIN", client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect admin PIN"
        )

    logger.log_auth_event(event="admin_login", success=True, client_ip=client_ip)
    return AuthResponse(
        access_token=create_admin_token(),
        user=UserResponse(id=ADMIN_SUBJECT, email="", role=UserRole.ADMIN.value),
    )


@router.get("/session", response_model=SessionResponse)
async def get_session(principal: Principal = Depends(get_current_principal)):
    """Who the token belongs to"""
    if principal.user is None:
        return SessionResponse(user=UserResponse(id=ADMIN_SUBJECT, email="", role=principal.role.value))
    return SessionResponse(user=_user_response(principal.user))


@router.post("/logout")
async def logout(principal: Principal = Depends(get_current_principal)):
    """
    Logout.

    Tokens are stateless; this records the event so the client can drop its
    copy.
    """
    logger.log_auth_event(event="logout", success=True, user_email=principal.email)
    return {"message": "Successfully logged out", "success": True}


@router.post("/password-reset", response_model=PasswordResetResponse)
async def request_password_reset(
    body: PasswordResetRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Issue a password reset token.

    Mail delivery is not wired up; in development the token is written to
    the log. The response is the same whether or not the account exists.
    """
    email = body.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user:
        reset_token = create_reset_token(user.id, user.email)
        logger.log_auth_event(event="password_reset_requested", success=True, user_email=user.email)
        if settings.is_dev_mode():
            logger.info(f"[Auth] Password reset link for {user.email}: {settings.get_site_url('/?reset_token=' + reset_token)}")
    else:
        logger.log_auth_event(event="password_reset_requested", success=False, user_email=email, reason="Unknown email")

    return PasswordResetResponse(
        message="비밀번호 재설정 안내를 이메일로 보냈습니다.",
        success=True
    )


@router.post("/password-update", response_model=PasswordResetResponse)
async def update_password(
    body: PasswordUpdateRequest,
    principal: Principal = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db)
):
    """Set a new password, authorised by a reset token or the current session"""
    user = None

    if body.reset_token:
        try:
            payload = jwt.decode(
                body.reset_token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM]
            )
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired reset token"
            )

        if payload.get("type") != RESET_TOKEN_TYPE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid reset token"
            )
        user = await db.get(User, payload.get("sub"))

    elif principal is not None:
        user = principal.user

    else:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    user.hashed_password = get_password_hash(body.password)
    await db.commit()

    logger.log_auth_event(event="password_update", success=True, user_email=user.email)
    return PasswordResetResponse(message="비밀번호가 변경되었습니다.", success=True)
