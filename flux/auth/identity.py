"""Resolve verified SSO profiles to local users.

The identity provider (Google, Microsoft, ...) is handled upstream; by the time a
profile reaches this module it has been verified, so the only job here is to find
or create the matching ``User`` + ``Identity`` pair.
"""
import logging
import re
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from flux.auth.tokens import random_code
from flux.models.identity import Identity
from flux.models.user import User

logger = logging.getLogger(__name__)

_HANDLE_STRIP = re.compile(r"[^a-z0-9_.~-]")
_HANDLE_MAX = 30

@dataclass
class SsoProfile:
    provider_id: str
    email: str | None = None
    display_name: str | None = None
    username: str | None = None

def ensure_unique_handle(db: Session, base: str) -> str:
    slug = _HANDLE_STRIP.sub("", base.lower())[:_HANDLE_MAX]
    if not slug:
        slug = "user" + random_code(3)

    handle = slug
    i = 0
    while db.scalar(select(User.id).where(User.handle == handle)) is not None:
        i += 1
        # suffix replaces the tail so handles stay mentionable
        suffix = str(i)
        handle = slug[: _HANDLE_MAX - len(suffix)] + suffix
    return handle

def resolve_sso_identity(db: Session, provider: str, profile: SsoProfile) -> User:
    ident = db.scalar(
        select(Identity).where(
            Identity.provider == provider,
            Identity.provider_id == profile.provider_id,
        )
    )
    if ident is not None:
        user = db.get(User, ident.user_id)
        if user is not None:
            return user
        # identity outlived its user; relink below
        db.delete(ident)
        db.flush()

    email = profile.email.lower().strip() if profile.email else None

    user = db.scalar(select(User).where(User.email == email)) if email else None
    if user is None:
        base = profile.username or (email.split("@")[0] if email else None) or "user"
        user = User(
            email=email,
            name=profile.display_name or base,
            handle=ensure_unique_handle(db, base),
        )
        db.add(user)
        db.flush()
        logger.info("created user %s (%s) from %s login", user.id, user.handle, provider)

    db.add(Identity(user_id=user.id, provider=provider, provider_id=profile.provider_id))
    db.flush()
    return user
