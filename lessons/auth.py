"""Bearer token decoding and the principal dependency.

Tokens are issued elsewhere; this module only verifies them and extracts
the principal name (the `sub` claim, or `username` for older tokens).
Role checks happen later in the access validator, so a request without
credentials yields a `None` principal rather than an error here.
"""

from typing import Optional

import jwt
from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='token expired')
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail='invalid token')


def get_principal(credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme)) -> Optional[str]:
    """FastAPI dependency returning the caller's principal name or `None`."""
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    name = payload.get('sub') or payload.get('username')
    if not name:
        raise HTTPException(status_code=401, detail='invalid token payload')
    return str(name)
