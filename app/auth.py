from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from app.exceptions import Unauthenticated


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class UserSession:
    """
    Explicit identity of the caller, passed to every favorites operation
    """
    user_id: str

    def require_user(self) -> str:
        if not self.user_id:
            raise Unauthenticated()
        return self.user_id


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """
    Creates a signed JWT access token for the given user id
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {"sub": user_id, "exp": expire, "type": "access"}
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> UserSession:
    """
    Decodes an access token into a user session
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.PyJWTError:
        raise Unauthenticated("Could not validate credentials")

    user_id = payload.get("sub")
    if not user_id or not isinstance(user_id, str):
        raise Unauthenticated("Token has no subject")

    return UserSession(user_id=user_id)


async def get_current_session(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UserSession:
    """
    Resolves the current user session from the bearer token
    """
    if credentials is None:
        raise Unauthenticated()
    return decode_access_token(credentials.credentials)
