from __future__ import annotations

from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint


def create_id(prefix: str) -> str:
    return f"{prefix}-{uuid4()}"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True, description="User ID.")
    username: str = Field(index=True, description="Unique username (case-insensitive).")
    email: Optional[str] = Field(
        default=None,
        index=True,
        description="Primary email address (nullable for legacy accounts).",
    )
    trustLevel: int = Field(
        default=0,
        description="Trust level (0 new | 1 basic | 2 member | 3 regular | 4 leader).",
    )
    admin: bool = Field(default=False, description="Site administrator.")
    moderator: bool = Field(default=False, description="Site moderator.")
    staged: bool = Field(
        default=False,
        description="Placeholder account created for an email recipient; not fully registered.",
    )
    active: bool = Field(default=True, description="Account is activated.")
    createdAt: str = Field(description="ISO timestamp when the user was created.")

    @property
    def staff(self) -> bool:
        return bool(self.admin or self.moderator)


class Category(SQLModel, table=True):
    id: str = Field(primary_key=True, description="Category ID.")
    name: str = Field(description="Category name (matched case-insensitively).")
    slug: str = Field(description="URL slug derived from the name.")
    readRestricted: bool = Field(
        default=False,
        description="Only staff may create topics in restricted categories.",
    )
    createdAt: str = Field(description="ISO timestamp when the category was created.")


class Topic(SQLModel, table=True):
    id: str = Field(primary_key=True, description="Topic ID.")
    title: str = Field(description="Topic title.")
    archetype: str = Field(
        default="regular",
        description="Archetype (regular | private_message).",
    )
    subtype: Optional[str] = Field(
        default=None,
        description="Subtype (user_to_user for private messages).",
    )
    categoryId: Optional[str] = Field(
        default=None,
        foreign_key="category.id",
        description="Category ID (nullable; private messages never carry one).",
    )
    userId: str = Field(foreign_key="users.id", description="Creator user ID.")
    visible: bool = Field(default=True, description="Listed topics are visible.")
    pinnedAt: Optional[str] = Field(
        default=None,
        description="ISO timestamp when the topic was pinned (staff only).",
    )
    postsCount: int = Field(default=0, description="Number of posts in the topic.")
    createdAt: str = Field(description="ISO timestamp when the topic was created.")
    updatedAt: str = Field(description="ISO timestamp of last activity.")


class Post(SQLModel, table=True):
    id: str = Field(primary_key=True, description="Post ID.")
    topicId: str = Field(foreign_key="topic.id", description="Owning topic ID.")
    userId: str = Field(foreign_key="users.id", description="Author user ID.")
    postNumber: int = Field(default=1, description="Position within the topic (1 = first post).")
    raw: str = Field(description="Raw post body.")
    createdAt: str = Field(description="ISO timestamp when the post was created.")


class TopicAllowedUser(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("topicId", "userId"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    topicId: str = Field(foreign_key="topic.id", index=True, description="Private message topic ID.")
    userId: str = Field(foreign_key="users.id", description="Participant user ID.")


class TopicTimer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    topicId: str = Field(foreign_key="topic.id", index=True, description="Timed topic ID.")
    userId: str = Field(foreign_key="users.id", description="User who set the timer.")
    statusType: str = Field(default="close", description="Action executed when the timer fires.")
    executeAt: str = Field(description="ISO timestamp when the timer fires.")
    createdAt: str = Field(description="ISO timestamp when the timer was created.")


class TopicUser(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("topicId", "userId"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    topicId: str = Field(foreign_key="topic.id", index=True, description="Topic ID.")
    userId: str = Field(foreign_key="users.id", description="User ID.")
    notificationLevel: int = Field(
        default=1,
        description="Notification level (0 muted | 1 regular | 2 tracking | 3 watching).",
    )
    notificationsReasonId: Optional[int] = Field(
        default=None,
        description="Why the level was set (1 created topic | 2 created post).",
    )
