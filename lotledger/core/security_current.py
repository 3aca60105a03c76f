from dataclasses import dataclass

from fastapi import Depends, Header
from fastapi.security import OAuth2PasswordBearer

from lotledger.core.config import settings
from lotledger.core.errors import Forbidden, Unauthenticated
from lotledger.core.security import TokenValidationError, decode_token, verify_agent_api_key

ROLE_ADMIN = "admin"
ROLE_AGENT = "agent"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


@dataclass(frozen=True)
class Actor:
    role: str
    id: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def get_current_actor(
    token: str | None = Depends(oauth2_scheme),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> Actor:
    """Administrators present a bearer token; agents present the shared API key."""
    if token:
        try:
            payload = decode_token(token, expected_type="access")
        except TokenValidationError as exc:
            raise Unauthenticated(str(exc)) from exc
        if payload["role"] != ROLE_ADMIN:
            raise Unauthenticated("Invalid token role")
        return Actor(role=ROLE_ADMIN, id=str(payload["sub"]))

    if x_api_key is not None:
        if not verify_agent_api_key(x_api_key):
            raise Unauthenticated("Invalid API key")
        return Actor(role=ROLE_AGENT, id=settings.agent_actor_id)

    raise Unauthenticated("Not authenticated")


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise Forbidden("Insufficient role for this action")
    return actor
