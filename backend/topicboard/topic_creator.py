from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .config import SiteSettings
from .guardian import Guardian
from .models import Category, Post, Topic, TopicAllowedUser, TopicTimer, TopicUser, User, create_id
from .timers import now_iso, parse_auto_close_time, parse_iso_datetime, to_iso
from .trust import Archetype, NotificationLevel, NotificationReason, TimerStatus, TopicSubtype

logger = structlog.get_logger(__name__)

_EMAIL_ADAPTER = TypeAdapter(EmailStr)
_USERNAME_UNSAFE = re.compile(r"[^a-z0-9_.-]+")


class CreationFailure(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    FEATURE_DISABLED = "feature_disabled"
    MALFORMED_INPUT = "malformed_input"
    INVALID_RECIPIENT = "invalid_recipient"
    INVALID_TOPIC = "invalid_topic"


class CreationAborted(Exception):
    """Raised inside TopicCreator to stop at the first failed rule."""

    def __init__(self, failure: CreationFailure, message: str) -> None:
        super().__init__(message)
        self.failure = failure
        self.message = message


@dataclass
class TopicCreationResult:
    topic: Optional[Topic] = None
    post: Optional[Post] = None
    timer: Optional[TopicTimer] = None
    failure: Optional[CreationFailure] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None and self.topic is not None


def split_targets(value: Any) -> List[str]:
    """Accept "a, b" strings or lists; drop blanks and case-insensitive repeats."""
    if value is None:
        return []
    items: Iterable[Any] = value.split(",") if isinstance(value, str) else value
    out: List[str] = []
    seen: set[str] = set()
    for item in items:
        text = str(item or "").strip()
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        out.append(text)
    return out


class TopicCreator:
    """Creates a topic (or private message) together with its first post.

    ``create()`` never raises for rule violations: it returns a
    :class:`TopicCreationResult` tagged with the first failure. Rows written before
    a failure stay in the session, so callers must roll back on failure. Use
    :func:`create_topic` for the commit/rollback boundary.
    """

    def __init__(
        self,
        session: Session,
        user: User,
        guardian: Guardian,
        attrs: Mapping[str, Any],
        settings: Optional[SiteSettings] = None,
    ) -> None:
        self.session = session
        self.user = user
        self.guardian = guardian
        self.settings = settings or guardian.settings
        self.attrs: Dict[str, Any] = dict(attrs)
        self.archetype = str(self.attrs.get("archetype") or Archetype.REGULAR)
        self.target_usernames = split_targets(self.attrs.get("target_usernames"))
        self.target_emails = split_targets(self.attrs.get("target_emails"))

    @classmethod
    def create_for(
        cls,
        session: Session,
        user: User,
        guardian: Guardian,
        attrs: Mapping[str, Any],
        settings: Optional[SiteSettings] = None,
    ) -> TopicCreationResult:
        return cls(session, user, guardian, attrs, settings).create()

    @property
    def private_message(self) -> bool:
        return self.archetype == Archetype.PRIVATE_MESSAGE

    def create(self) -> TopicCreationResult:
        try:
            if self.archetype not in Archetype.ALL:
                raise CreationAborted(CreationFailure.INVALID_TOPIC, f"Unknown archetype: {self.archetype}")
            category = self._check_can_send_permission()
            self._validate_target_emails()
            topic = self._build_topic(category)
            self._validate_topic(topic)
            recipients = self._resolve_recipients() if self.private_message else []
            self._save_topic(topic)
            post = self._create_first_post(topic)
            self._add_allowed_users(topic, recipients)
            timer = self._create_timer(topic)
            self.session.flush()
        except CreationAborted as exc:
            logger.info(
                "topic_creation_failed",
                user_id=self.user.id,
                archetype=self.archetype,
                failure=exc.failure.value,
                error=exc.message,
            )
            return TopicCreationResult(failure=exc.failure, errors=[exc.message])

        self._watch_topic(topic)
        logger.info(
            "topic_created",
            topic_id=topic.id,
            user_id=self.user.id,
            archetype=topic.archetype,
            category_id=topic.categoryId,
            timer=timer is not None,
        )
        return TopicCreationResult(topic=topic, post=post, timer=timer)

    # Permission checks, in order.

    def _check_can_send_permission(self) -> Optional[Category]:
        if self.private_message:
            if not self.guardian.can_send_private_message():
                raise CreationAborted(
                    CreationFailure.PERMISSION_DENIED,
                    "You are not permitted to send private messages.",
                )
            if self.target_emails:
                if not self.settings.enable_private_email_messages:
                    raise CreationAborted(
                        CreationFailure.FEATURE_DISABLED,
                        "Sending private messages to email addresses is disabled.",
                    )
                if not self.guardian.can_send_private_messages_to_email():
                    raise CreationAborted(
                        CreationFailure.PERMISSION_DENIED,
                        "You are not permitted to send private messages to email addresses.",
                    )
            return None

        category = self._resolve_category()
        if not self.guardian.can_create_topic(category):
            raise CreationAborted(
                CreationFailure.PERMISSION_DENIED,
                "You are not permitted to create topics here.",
            )
        return category

    def _validate_target_emails(self) -> None:
        limit = self.settings.max_email_length
        for email in self.target_emails:
            if len(email) > limit:
                raise CreationAborted(
                    CreationFailure.MALFORMED_INPUT,
                    f"Email is too long (maximum is {limit} characters).",
                )
            try:
                _EMAIL_ADAPTER.validate_python(email)
            except ValidationError:
                raise CreationAborted(CreationFailure.MALFORMED_INPUT, f"Email is invalid: {email}")

    # Normalization.

    def _resolve_category(self) -> Optional[Category]:
        ref = self.attrs.get("category")
        if ref is None or isinstance(ref, bool):
            return None
        text = str(ref).strip()
        if not text:
            return None
        category = self.session.get(Category, text)
        if category is None and isinstance(ref, str):
            category = self.session.exec(
                select(Category).where(func.lower(Category.name) == text.lower())
            ).first()
        return category

    def _build_topic(self, category: Optional[Category]) -> Topic:
        # Backdating is a staff-only import path.
        created = parse_iso_datetime(self.attrs.get("created_at")) if self.guardian.is_staff else None
        timestamp = to_iso(created) if created else now_iso()
        title = " ".join(str(self.attrs.get("title") or "").split())
        topic = Topic(
            id=create_id("topic"),
            title=title,
            archetype=self.archetype,
            userId=self.user.id,
            createdAt=timestamp,
            updatedAt=timestamp,
        )
        if self.private_message:
            topic.subtype = TopicSubtype.USER_TO_USER
        elif category is not None:
            topic.categoryId = category.id

        if self.guardian.is_staff:
            if self.attrs.get("visible") is False:
                topic.visible = False
            if self.attrs.get("pinned") and self.guardian.can_pin_topics():
                topic.pinnedAt = timestamp
        return topic

    # Validation.

    def _invalid(self, message: str) -> CreationAborted:
        return CreationAborted(CreationFailure.INVALID_TOPIC, message)

    def _validate_topic(self, topic: Topic) -> None:
        settings = self.settings
        min_title = (
            settings.min_personal_message_title_length
            if self.private_message
            else settings.min_topic_title_length
        )
        if len(topic.title) < min_title:
            raise self._invalid(f"Title is too short (minimum is {min_title} characters).")
        if len(topic.title) > settings.max_topic_title_length:
            raise self._invalid(
                f"Title is too long (maximum is {settings.max_topic_title_length} characters)."
            )

        raw = str(self.attrs.get("raw") or "").strip()
        min_body = (
            settings.min_personal_message_post_length
            if self.private_message
            else settings.min_first_post_length
        )
        if len(raw) < min_body:
            raise self._invalid(f"Body is too short (minimum is {min_body} characters).")
        if len(raw) > settings.max_post_length:
            raise self._invalid(f"Body is too long (maximum is {settings.max_post_length} characters).")

        if not self.private_message:
            if topic.categoryId is None and not settings.allow_uncategorized_topics:
                raise self._invalid("Category can't be blank.")
            if not settings.allow_duplicate_topic_titles and self._title_taken(topic.title):
                raise self._invalid("Title has already been used.")

    def _title_taken(self, title: str) -> bool:
        existing = self.session.exec(
            select(Topic.id).where(
                func.lower(Topic.title) == title.lower(),
                Topic.archetype == Archetype.REGULAR,
            )
        ).first()
        return existing is not None

    # Recipients.

    def _resolve_recipients(self) -> List[User]:
        if not self.target_usernames and not self.target_emails:
            raise CreationAborted(
                CreationFailure.INVALID_RECIPIENT,
                "Private messages need at least one recipient.",
            )
        recipients: List[User] = []
        for username in self.target_usernames:
            user = self._find_user_by_username(username)
            if user is None:
                raise CreationAborted(CreationFailure.INVALID_RECIPIENT, f"Unknown user: {username}")
            recipients.append(user)
        for email in self.target_emails:
            user = self.session.exec(select(User).where(func.lower(User.email) == email.lower())).first()
            if user is None:
                if not self.settings.enable_staged_users:
                    raise CreationAborted(
                        CreationFailure.INVALID_RECIPIENT,
                        f"No user found for email: {email}",
                    )
                user = self._stage_user(email)
            recipients.append(user)
        return recipients

    def _find_user_by_username(self, username: str) -> Optional[User]:
        return self.session.exec(
            select(User).where(func.lower(User.username) == username.strip().lower())
        ).first()

    def _stage_user(self, email: str) -> User:
        local = email.split("@", 1)[0].lower()
        base = _USERNAME_UNSAFE.sub("_", local).strip("_.-") or "user"
        candidate = base
        suffix = 1
        while self._find_user_by_username(candidate) is not None:
            suffix += 1
            candidate = f"{base}{suffix}"
        user = User(
            id=create_id("user"),
            username=candidate,
            email=email.lower(),
            staged=True,
            active=False,
            createdAt=now_iso(),
        )
        self.session.add(user)
        logger.info("staged_user_created", user_id=user.id, username=user.username)
        return user

    # Persistence.

    def _save_topic(self, topic: Topic) -> None:
        self.session.add(topic)
        self.session.flush()

    def _create_first_post(self, topic: Topic) -> Post:
        post = Post(
            id=create_id("post"),
            topicId=topic.id,
            userId=self.user.id,
            postNumber=1,
            raw=str(self.attrs.get("raw") or "").strip(),
            createdAt=topic.createdAt,
        )
        topic.postsCount = 1
        self.session.add(post)
        self.session.add(topic)
        return post

    def _add_allowed_users(self, topic: Topic, recipients: List[User]) -> None:
        if not self.private_message:
            return
        seen: set[str] = set()
        for user in [self.user, *recipients]:
            if user.id in seen:
                continue
            seen.add(user.id)
            self.session.add(TopicAllowedUser(topicId=topic.id, userId=user.id))

    def _create_timer(self, topic: Topic) -> Optional[TopicTimer]:
        close_at = parse_auto_close_time(self.attrs.get("auto_close_time"))
        if close_at is None:
            return None
        timer = TopicTimer(
            topicId=topic.id,
            userId=self.user.id,
            statusType=TimerStatus.CLOSE,
            executeAt=to_iso(close_at),
            createdAt=now_iso(),
        )
        self.session.add(timer)
        return timer

    def _watch_record(self, topic: Topic) -> TopicUser:
        return TopicUser(
            topicId=topic.id,
            userId=self.user.id,
            notificationLevel=int(NotificationLevel.WATCHING),
            notificationsReasonId=int(NotificationReason.CREATED_TOPIC),
        )

    def _watch_topic(self, topic: Topic) -> None:
        # Savepoint: a failed watch must not undo the topic.
        try:
            with self.session.begin_nested():
                self.session.add(self._watch_record(topic))
        except SQLAlchemyError:
            logger.warning("topic_watch_failed", topic_id=topic.id, user_id=self.user.id, exc_info=True)


def create_topic(
    session: Session,
    user: User,
    guardian: Guardian,
    attrs: Mapping[str, Any],
    settings: Optional[SiteSettings] = None,
) -> TopicCreationResult:
    """Run a TopicCreator and commit on success, roll back everything on failure."""
    try:
        result = TopicCreator.create_for(session, user, guardian, attrs, settings)
    except Exception:
        session.rollback()
        raise
    if not result.ok:
        session.rollback()
        return result
    session.commit()
    for row in (result.topic, result.post, result.timer):
        if row is not None:
            session.refresh(row)
    return result
