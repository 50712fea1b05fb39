# laundrypos/auth.py
# Caller identity for tenant routes
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel

from laundrypos.enums import ActorRole
from laundrypos.errors import PermissionDenied


class Actor(BaseModel):
    id: str
    role: ActorRole


def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: str = Header(ActorRole.VIEWER.value),
) -> Actor:
    if not x_actor_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Actor-Id header required")
    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown role {x_actor_role}")
    return Actor(id=x_actor_id, role=role)


def require_writer(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.role.can_write:
        raise PermissionDenied(f"Role {actor.role.value} cannot modify data")
    return actor
