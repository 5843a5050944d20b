"""Caller identity handed over by the authentication layer.

Tokens are verified upstream (gateway or auth middleware), which forwards
the numeric user id in the ``X-User-Id`` header. The API treats it as an
opaque comparable value.
"""
from typing import Optional

from fastapi import Header, HTTPException

USER_ID_HEADER = "X-User-Id"


async def get_requester_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> int:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="user not authenticated")
    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="invalid user identity")
