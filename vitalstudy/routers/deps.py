"""
Request-scoped dependencies shared by the routers.

Authentication lives in front of this service; the caller's identity
arrives as an integer in the X-User-Id header.
"""
from fastapi import Header


def get_user_id(
    x_user_id: int = Header(..., alias="X-User-Id", ge=1, description="Authenticated user id."),
) -> int:
    return x_user_id
