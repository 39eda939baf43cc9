import uuid

from fastapi import Cookie, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from flux.auth.tokens import decode_access_token
from flux.db import get_db
from flux.models.user import User

bearer = HTTPBearer(auto_error=False)

TOKEN_COOKIE = "token"

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    token_cookie: str | None = Cookie(default=None, alias=TOKEN_COOKIE),
    db: Session = Depends(get_db),
) -> User:
    # header wins over cookie
    if creds is not None and creds.scheme.lower() == "bearer":
        token = creds.credentials
    else:
        token = token_cookie
    if not token:
        raise HTTPException(status_code=401, detail="missing bearer token")

    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(payload["sub"])
    except Exception:
        raise HTTPException(status_code=401, detail="invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="user not found")

    return user
