# app/api/dependencies.py
from typing import Optional

from fastapi import Depends, Request

from app.core.config import settings
from app.core.exceptions import Unauthorized
from app.core.security import verify_access_token
from app.crud.crud_flgo import FlgoRepository
from app.crud.record_cache import RecordCacheRegistry
from app.db.ragic import RagicGateway
from app.schemas.user import CurrentUser


def get_gateway(request: Request) -> RagicGateway:
    return request.app.state.ragic


def get_repository(gateway: RagicGateway = Depends(get_gateway)) -> FlgoRepository:
    return FlgoRepository(gateway)


def get_record_caches(request: Request) -> RecordCacheRegistry:
    return request.app.state.record_caches


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    # Alternativa para clientes sin cookies
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    return None


def get_current_user(request: Request) -> Optional[CurrentUser]:
    token = _token_from_request(request)
    return verify_access_token(token) if token else None


def get_current_active_user(
    user: Optional[CurrentUser] = Depends(get_current_user),
) -> CurrentUser:
    if user is None:
        raise Unauthorized()
    return user
