import hmac

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm

from lotledger.core.api_docs import error_responses
from lotledger.core.config import settings
from lotledger.core.errors import Unauthenticated
from lotledger.core.security import create_access_token, verify_password
from lotledger.core.security_current import ROLE_ADMIN, Actor, get_current_actor
from lotledger.schemas.auth import LoginIn, TokenOut

router = APIRouter(prefix="/auth", tags=["auth"])


def _authenticate_admin(username: str, password: str) -> str:
    if not settings.admin_password_hash:
        raise Unauthenticated("Admin login is not configured")
    username_ok = hmac.compare_digest(username.strip().encode("utf-8"), settings.admin_username.encode("utf-8"))
    if not username_ok or not verify_password(password, settings.admin_password_hash):
        raise Unauthenticated("Invalid username or password")
    return settings.admin_username


@router.post(
    "/login",
    response_model=TokenOut,
    summary="Administrator login",
    description="Exchange administrator credentials for a bearer token. Agents use the X-API-Key header instead.",
    responses=error_responses(401, 422, 500),
)
def login(payload: LoginIn):
    subject = _authenticate_admin(payload.username, payload.password)
    return TokenOut(access_token=create_access_token(subject, ROLE_ADMIN), role=ROLE_ADMIN)


@router.post(
    "/token",
    response_model=TokenOut,
    summary="OAuth2 password token (Swagger Authorize)",
    responses=error_responses(401, 422, 500),
)
def login_for_swagger(form_data: OAuth2PasswordRequestForm = Depends()):
    subject = _authenticate_admin(form_data.username, form_data.password)
    return TokenOut(access_token=create_access_token(subject, ROLE_ADMIN), role=ROLE_ADMIN)


@router.get(
    "/me",
    summary="Resolve the calling actor",
    responses=error_responses(401, 500),
)
def whoami(actor: Actor = Depends(get_current_actor)):
    return {"id": actor.id, "role": actor.role}
