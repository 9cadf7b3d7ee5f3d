# FILE: coursestore/api/deps.py

from fastapi import Header


async def get_user_id(x_user_id: int = Header(..., alias="X-User-Id")) -> int:
    """Caller identity. Sessions/tokens are out of scope; the client sends its user id."""
    return x_user_id
