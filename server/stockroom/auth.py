from typing import Iterable, Literal, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from stockroom.config import settings

VALID_ROLES = ("admin", "supervisor", "warehouse")

ALL_ROLES = VALID_ROLES
WRITE_ROLES = ("admin", "warehouse")
ADMIN_ROLES = ("admin",)

Role = Literal["admin", "supervisor", "warehouse"]

# Tokens are issued by the external auth service; this app only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/sign-in")


class Actor(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    role: Role


def normalize_role(role_value: Optional[str]) -> Optional[str]:
    if not role_value:
        return None
    roles = {role.strip().lower() for role in role_value.split(",") if role.strip()}
    for role in VALID_ROLES:
        if role in roles:
            return role
    return None


def get_current_actor(token: str = Depends(oauth2_scheme)) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.auth_secret_key, algorithms=[settings.auth_algorithm])
    except JWTError:
        raise credentials_exception

    actor_id = payload.get("sub")
    role = normalize_role(payload.get("role"))
    if actor_id is None or role is None:
        raise credentials_exception
    return Actor(id=str(actor_id), name=payload.get("name"), role=role)


def require_role(roles: Iterable[str]):
    allowed = tuple(roles)

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return actor

    return dependency
