from __future__ import annotations

import os
import secrets
from fastapi import Header, HTTPException, status
from sqlalchemy import func
from sqlmodel import Session, select

from .models import User


def _configured_token() -> str | None:
    token = os.getenv("TOPICBOARD_TOKEN", "").strip()
    return token or None


def _validate_token(value: str | None) -> None:
    configured = _configured_token()
    if not configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Server token is not configured. Set TOPICBOARD_TOKEN.",
        )
    provided = (value or "").strip()
    if not provided or not secrets.compare_digest(provided, configured):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def require_token(
    x_topicboard_token: str | None = Header(
        default=None,
        alias="X-Topicboard-Token",
        description="Server token required for all write operations.",
    ),
) -> None:
    _validate_token(x_topicboard_token)


def resolve_acting_user(session: Session, username: str | None) -> User:
    """Look up the user a write is performed as; staged accounts cannot act."""
    name = (username or "").strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Topicboard-User header")
    user = session.exec(select(User).where(func.lower(User.username) == name.lower())).first()
    if user is None or user.staged:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user


def is_token_configured() -> bool:
    return _configured_token() is not None
