import logging

from fastapi import APIRouter, Depends, Response

from app.api.dependencies import get_current_active_user, get_gateway, get_repository
from app.core import security
from app.core.config import settings
from app.core.exceptions import Unauthorized, ValidationError
from app.crud.crud_flgo import FlgoRepository
from app.db.ragic import RagicGateway
from app.schemas.user import CurrentUser, LoginRequest, LoginResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/auth", response_model=LoginResponse)
async def login(
    form_data: LoginRequest,
    response: Response,
    gateway: RagicGateway = Depends(get_gateway),
    repository: FlgoRepository = Depends(get_repository),
):
    """
    Valida las credenciales contra Ragic, carga el perfil desde la hoja de
    usuarios y deja el token de sesion en una cookie http-only.
    """
    if not form_data.email or not form_data.password:
        raise ValidationError("Email and password are required.")

    session_id = await gateway.password_auth(form_data.email, form_data.password)
    if not session_id:
        raise Unauthorized("Invalid email or password.")

    user = await repository.get_user_profile(form_data.email)
    logger.info("Login %s (barco: %s)", user.email, user.assigned_vessel or "admin")

    token = security.create_access_token(user)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    return {"ok": True, "user": user}


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return {"ok": True}


@router.get("/auth/me", response_model=CurrentUser)
def read_users_me(current_user: CurrentUser = Depends(get_current_active_user)):
    return current_user
