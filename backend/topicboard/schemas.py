from __future__ import annotations

from typing import Optional, List, Literal, Union
from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class ModelBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=60, description="Unique username.", examples=["neil"])
    email: Optional[str] = Field(default=None, description="Primary email.", examples=["neil@example.com"])
    trustLevel: int = Field(default=0, ge=0, le=4, description="Trust level (0-4).", examples=[2])
    admin: bool = Field(default=False, description="Grant administrator role.")
    moderator: bool = Field(default=False, description="Grant moderator role.")


class UserOut(ModelBase):
    id: str = Field(description="User ID.", examples=["user-1"])
    username: str = Field(description="Username.", examples=["neil"])
    email: Optional[str] = Field(default=None, description="Primary email.")
    trustLevel: int = Field(description="Trust level (0-4).", examples=[2])
    admin: bool = Field(description="Administrator role.")
    moderator: bool = Field(description="Moderator role.")
    staged: bool = Field(description="Placeholder account created for an email recipient.")
    createdAt: str = Field(description="ISO timestamp when created.")


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50, description="Category name.", examples=["Neil's Blog"])
    readRestricted: bool = Field(default=False, description="Only staff may create topics.")


class CategoryOut(ModelBase):
    id: str = Field(description="Category ID.", examples=["category-1"])
    name: str = Field(description="Category name.", examples=["Neil's Blog"])
    slug: str = Field(description="URL slug.", examples=["neils-blog"])
    readRestricted: bool = Field(description="Only staff may create topics.")
    createdAt: str = Field(description="ISO timestamp when created.")


class TopicCreateRequest(BaseModel):
    """Attributes accepted when creating a topic or private message."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "this is a new title",
                "raw": "this is the body of the first post",
                "archetype": "regular",
                "category": "neil's blog",
            }
        }
    )
    title: str = Field(description="Topic title (whitespace is squished).")
    raw: str = Field(description="Body of the first post.")
    archetype: Literal["regular", "private_message"] = Field(
        default="regular",
        description="regular topic or private_message.",
    )
    target_usernames: Optional[Union[str, List[str]]] = Field(
        default=None,
        description="Private message recipients (comma separated or list).",
    )
    target_emails: Optional[Union[str, List[str]]] = Field(
        default=None,
        description="Private message email recipients (comma separated or list).",
    )
    category: Optional[Union[str, int]] = Field(
        default=None,
        description="Category id or name (name is matched case-insensitively; unknown names are ignored).",
    )
    auto_close_time: Optional[Union[str, int, float]] = Field(
        default=None,
        description="Absolute ISO timestamp to close the topic at; other values (including numbers) are ignored.",
    )
    pinned: Optional[bool] = Field(default=None, description="Pin the topic (staff only).")
    visible: Optional[bool] = Field(default=None, description="List the topic (staff only).")
    created_at: Optional[str] = Field(default=None, description="Override creation timestamp (ISO, staff only).")


class TopicTimerOut(ModelBase):
    statusType: str = Field(description="Action executed when the timer fires.", examples=["close"])
    executeAt: str = Field(description="ISO timestamp when the timer fires.")


class TopicOut(ModelBase):
    id: str = Field(description="Topic ID.", examples=["topic-1"])
    title: str = Field(description="Topic title.")
    archetype: str = Field(description="regular | private_message.")
    subtype: Optional[str] = Field(default=None, description="user_to_user for private messages.")
    categoryId: Optional[str] = Field(default=None, description="Category ID.")
    userId: str = Field(description="Creator user ID.")
    visible: bool = Field(description="Listed.")
    pinnedAt: Optional[str] = Field(default=None, description="ISO timestamp when pinned.")
    postsCount: int = Field(description="Number of posts.")
    createdAt: str = Field(description="ISO timestamp when created.")
    updatedAt: str = Field(description="ISO timestamp of last activity.")


class TopicDetailOut(TopicOut):
    category: Optional[CategoryOut] = Field(default=None, description="Resolved category.")
    timer: Optional[TopicTimerOut] = Field(default=None, description="Public topic timer, if any.")
    allowedUsernames: List[str] = Field(default_factory=list, description="Private message participants.")
    raw: Optional[str] = Field(default=None, description="Body of the first post.")
