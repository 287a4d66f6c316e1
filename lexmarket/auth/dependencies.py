"""
Caller identity.

Authentication happens upstream: the gateway in front of this service
verifies the session and forwards the caller as ``X-User-Id`` and
``X-User-Role`` headers.
"""
from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from pydantic import BaseModel
from lexmarket.models import UserRole


class CurrentUser(BaseModel):
    id: str
    role: UserRole


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )
    if not x_user_id or not x_user_role:
        raise credentials_exception
    try:
        role = UserRole(x_user_role.strip().lower())
    except ValueError:
        raise credentials_exception
    return CurrentUser(id=x_user_id.strip(), role=role)

def require_role(allowed_roles: list[UserRole]):
    def role_checker(current_user: CurrentUser = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user
    return role_checker


# Convenience wrappers
def require_admin():
    return require_role([UserRole.ADMIN])


def require_lawyer():
    return require_role([UserRole.LAWYER])


def require_client_or_admin():
    return require_role([UserRole.CLIENT, UserRole.ADMIN])
