from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import hmac
from jose import JWTError, jwt
import bcrypt
from fastapi import HTTPException, status

from unionsite.core.config import settings

ACCESS_TOKEN_TYPE = "access"
RESET_TOKEN_TYPE = "password_reset"

# Subject used for tokens issued through the admin PIN gate
ADMIN_SUBJECT = "admin"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    if not hashed_password:
        return False
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def verify_admin_pin(pin: str) -> bool:
    """Constant-time comparison against the configured admin PIN"""
    return hmac.compare_digest((pin or "").encode("utf-8"), settings.ADMIN_PIN.encode("utf-8"))


def _encode(data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.utcnow() + expires_delta, "type": token_type})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    return _encode(
        data,
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_admin_token() -> str:
    """Access token for the shared admin gate"""
    return create_access_token({"sub": ADMIN_SUBJECT, "role": "admin"})


def create_reset_token(user_id: str, email: str) -> str:
    """Single-purpose token for the password-update step"""
    return _encode(
        {"sub": user_id, "email": email},
        RESET_TOKEN_TYPE,
        timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
    )


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
