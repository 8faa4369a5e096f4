from typing import Optional

from fastapi import Depends, Header
from jose import jwt, JWTError

from app import config
from app.courses.models import Role
from app.errors import AuthenticationError, PermissionDeniedError


class UserContext:
    """
    Identity carried by a verified bearer token
    """
    def __init__(self, user_id: int, role: Role):
        self.user_id = user_id
        self.role = role

    @property
    def is_instructor(self) -> bool:
        return self.role == Role.INSTRUCTOR


def _decode_jwt_token(token: str) -> dict:
    # read at call time so the secret can be swapped without reimporting
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or Expired Token")


def _user_from_payload(payload: dict) -> UserContext:
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token: missing user_id")

    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise AuthenticationError("Invalid token: missing role")

    return UserContext(user_id, role)


def verify_token(authorization: str = Header(None)) -> UserContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Unauthorized")

    token = authorization.split(" ", 1)[1]
    return _user_from_payload(_decode_jwt_token(token))


def get_optional_user(authorization: str = Header(None)) -> Optional[UserContext]:
    """Same as verify_token, but anonymous requests get None"""
    if not authorization:
        return None
    return verify_token(authorization)


async def get_current_instructor(user: UserContext = Depends(verify_token)) -> UserContext:
    """
    Dependency: validates the caller is an instructor

    Raises:
        401: Invalid token
        403: Not an instructor
    """
    if user.role != Role.INSTRUCTOR:
        raise PermissionDeniedError("Access denied. Instructor privileges required.")
    return user


async def get_current_student(user: UserContext = Depends(verify_token)) -> UserContext:
    if user.role != Role.STUDENT:
        raise PermissionDeniedError("Access denied. Student privileges required.")
    return user
