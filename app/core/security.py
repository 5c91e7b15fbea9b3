# app/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from app.core.config import settings
from app.schemas.user import CurrentUser


def create_access_token(user: CurrentUser, expires_delta: Optional[timedelta] = None) -> str:
    """Token de sesion firmado con la identidad completa del usuario."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": user.email,
        "name": user.name,
        "vessel": user.assigned_vessel,
        "vesselAbbr": user.vessel_abbreviation,
        "iat": datetime.now(timezone.utc),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_access_token(token: str) -> Optional[CurrentUser]:
    """Devuelve la identidad del token, o None si es invalido o expiro."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    email = payload.get("sub")
    if not email:
        return None
    return CurrentUser(
        email=email,
        name=payload.get("name", ""),
        assigned_vessel=payload.get("vessel", ""),
        vessel_abbreviation=payload.get("vesselAbbr", ""),
    )
