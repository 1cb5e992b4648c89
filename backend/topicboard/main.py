from __future__ import annotations

import os
import re
from typing import List

import structlog
from fastapi import FastAPI, Depends, Body, HTTPException, Header
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from .auth import is_token_configured, require_token, resolve_acting_user
from .config import SiteSettings, load_site_settings
from .db import init_db, get_session
from .guardian import Guardian
from .models import Category, Post, Topic, TopicAllowedUser, TopicTimer, User, create_id
from .observability import configure_logging
from .schemas import (
    CategoryCreate,
    CategoryOut,
    TopicCreateRequest,
    TopicDetailOut,
    TopicOut,
    TopicTimerOut,
    UserCreate,
    UserOut,
)
from .timers import now_iso
from .topic_creator import CreationFailure, create_topic

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Topicboard API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    description="Topicboard API for users, categories, topics and private messages.",
)

cors_origins = os.getenv("TOPICBOARD_CORS_ORIGINS", "*")
allowed_origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
if not allowed_origins:
    allowed_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

FAILURE_STATUS = {
    CreationFailure.PERMISSION_DENIED: 403,
    CreationFailure.FEATURE_DISABLED: 403,
    CreationFailure.MALFORMED_INPUT: 422,
    CreationFailure.INVALID_RECIPIENT: 422,
    CreationFailure.INVALID_TOPIC: 422,
}


def get_site_settings() -> SiteSettings:
    # Fresh snapshot per request; nothing mutates it during a creation attempt.
    return load_site_settings()


def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "category"


@app.on_event("startup")
def on_startup() -> None:
    configure_logging()
    init_db()
    logger.info("startup", token_configured=is_token_configured())


@app.get("/api/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/settings", response_model=SiteSettings, tags=["config"])
def get_settings(settings: SiteSettings = Depends(get_site_settings)):
    return settings


@app.post("/api/users", dependencies=[Depends(require_token)], response_model=UserOut, tags=["users"])
def create_user(payload: UserCreate = Body(...)):
    """Register a user (trust level and staff roles are set directly)."""
    with get_session() as session:
        user = User(
            id=create_id("user"),
            username=payload.username.strip(),
            email=(payload.email or "").strip().lower() or None,
            trustLevel=payload.trustLevel,
            admin=payload.admin,
            moderator=payload.moderator,
            createdAt=now_iso(),
        )
        session.add(user)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=409, detail="Username is already taken")
        session.refresh(user)
        return user


@app.get("/api/categories", response_model=List[CategoryOut], tags=["categories"])
def list_categories():
    with get_session() as session:
        return session.exec(select(Category).order_by(Category.name)).all()


@app.post("/api/categories", dependencies=[Depends(require_token)], response_model=CategoryOut, tags=["categories"])
def create_category(payload: CategoryCreate = Body(...)):
    name = payload.name.strip()
    with get_session() as session:
        existing = session.exec(select(Category).where(func.lower(Category.name) == name.lower())).first()
        if existing:
            raise HTTPException(status_code=409, detail="Category name is already taken")
        category = Category(
            id=create_id("category"),
            name=name,
            slug=_slugify(name),
            readRestricted=payload.readRestricted,
            createdAt=now_iso(),
        )
        session.add(category)
        session.commit()
        session.refresh(category)
        return category


@app.post("/api/topics", dependencies=[Depends(require_token)], response_model=TopicOut, tags=["topics"])
def post_topic(
    payload: TopicCreateRequest = Body(...),
    x_topicboard_user: str | None = Header(
        default=None,
        alias="X-Topicboard-User",
        description="Username the topic is created as.",
    ),
    settings: SiteSettings = Depends(get_site_settings),
):
    """Create a topic or private message as the acting user."""
    with get_session() as session:
        user = resolve_acting_user(session, x_topicboard_user)
        guardian = Guardian(user, settings)
        result = create_topic(session, user, guardian, payload.model_dump(exclude_none=True), settings)
        if not result.ok:
            raise HTTPException(
                status_code=FAILURE_STATUS[result.failure],
                detail={"failure": result.failure.value, "errors": result.errors},
            )
        return result.topic


@app.get("/api/topics/{topic_id}", response_model=TopicDetailOut, tags=["topics"])
def get_topic(topic_id: str):
    with get_session() as session:
        topic = session.get(Topic, topic_id)
        if not topic:
            raise HTTPException(status_code=404, detail="Topic not found")
        category = session.get(Category, topic.categoryId) if topic.categoryId else None
        timer = session.exec(select(TopicTimer).where(TopicTimer.topicId == topic.id)).first()
        first_post = session.exec(
            select(Post).where(Post.topicId == topic.id, Post.postNumber == 1)
        ).first()
        usernames = session.exec(
            select(User.username)
            .join(TopicAllowedUser, TopicAllowedUser.userId == User.id)
            .where(TopicAllowedUser.topicId == topic.id)
            .order_by(User.username)
        ).all()
        return TopicDetailOut(
            **TopicOut.model_validate(topic).model_dump(),
            category=CategoryOut.model_validate(category) if category else None,
            timer=TopicTimerOut.model_validate(timer) if timer else None,
            allowedUsernames=list(usernames),
            raw=first_post.raw if first_post else None,
        )
