from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from sqlalchemy.orm import Session

from flux.auth.deps import TOKEN_COOKIE
from flux.auth.identity import SsoProfile, resolve_sso_identity
from flux.auth.tokens import issue_access_token
from flux.config import settings
from flux.db import get_db
from flux.ratelimit import rate_limit
from flux.schemas.auth import AccessTokenOut, SsoProfileIn

router = APIRouter(prefix="/auth", tags=["auth"])

SUPPORTED_PROVIDERS = {"google", "microsoft"}

def _check_gateway(secret: str | None) -> None:
    expected = settings.sso_gateway_secret
    if expected:
        if not secret or not hmac.compare_digest(secret, expected):
            raise HTTPException(status_code=401, detail="invalid gateway secret")
        return
    # no shared secret configured: only usable outside prod
    if settings.app_env == "prod":
        raise HTTPException(status_code=404, detail="not found")

@router.post("/sso/{provider}/callback", response_model=AccessTokenOut)
def sso_callback(
    provider: str,
    payload: SsoProfileIn,
    response: Response,
    db: Session = Depends(get_db),
    x_sso_gateway_secret: str | None = Header(default=None),
    _: None = Depends(
        rate_limit(
            "auth:sso_callback",
            limit_per_window=settings.rate_limit_sso_callback_per_min,
            window_seconds=60,
        )
    ),
) -> AccessTokenOut:
    _check_gateway(x_sso_gateway_secret)

    provider = provider.lower().strip()
    if provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(status_code=404, detail="unknown provider")

    profile = SsoProfile(
        provider_id=payload.provider_id,
        email=payload.email,
        display_name=payload.display_name,
        username=payload.username,
    )
    user = resolve_sso_identity(db, provider, profile)
    db.commit()

    token = issue_access_token(user.id)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        secure=settings.app_env == "prod",
        samesite="none" if settings.app_env == "prod" else "lax",
    )
    return AccessTokenOut(access_token=token)

@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(TOKEN_COOKIE)
    return {"ok": True}
