"""
Caller identity. Tokens are issued by the account service; we only verify
them and read the user id out of the `_id` claim.
"""
import logging
from typing import Optional

import jwt
from fastapi import Header, HTTPException

import config

logger = logging.getLogger(__name__)

_SCHEMES = {"jwt", "bearer"}


def _user_id_from_header(authorization: str) -> str:
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() not in _SCHEMES or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization format")
    if not config.JWT_SECRET:
        logger.error("JWT_SECRET is not set; refusing to verify tokens")
        raise HTTPException(status_code=503, detail="Authentication is not configured")
    try:
        payload = jwt.decode(parts[1].strip(), config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug("Rejected token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = payload.get("_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return str(user_id)


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    return _user_id_from_header(authorization)


def get_optional_user_id(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Like get_current_user_id, but anonymous callers get None."""
    if not authorization:
        return None
    return _user_id_from_header(authorization)
