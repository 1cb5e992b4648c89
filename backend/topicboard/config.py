from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from .trust import TrustLevel

ENV_PREFIX = "TOPICBOARD_"


class SiteSettings(BaseModel):
    """Site-wide rules consulted while creating topics and messages.

    A snapshot is built once per request and handed to the creator; it is frozen so
    nothing downstream can flip a flag mid-attempt.
    """

    model_config = ConfigDict(frozen=True)

    min_trust_to_create_topic: TrustLevel = Field(
        default=TrustLevel.NEW,
        description="Minimum trust level required to create a regular topic.",
    )
    min_trust_to_send_messages: TrustLevel = Field(
        default=TrustLevel.BASIC,
        description="Minimum trust level required to send private messages.",
    )
    min_trust_to_send_email_messages: TrustLevel = Field(
        default=TrustLevel.LEADER,
        description="Minimum trust level required to send private messages to email addresses.",
    )
    enable_private_email_messages: bool = Field(
        default=False,
        description="Allow private messages addressed to email recipients.",
    )
    enable_staged_users: bool = Field(
        default=True,
        description="Create staged users for unknown email recipients.",
    )
    allow_duplicate_topic_titles: bool = Field(
        default=False,
        description="Skip the case-insensitive duplicate title check.",
    )
    allow_uncategorized_topics: bool = Field(
        default=True,
        description="Allow regular topics without a category.",
    )
    min_topic_title_length: int = Field(default=15, ge=1)
    max_topic_title_length: int = Field(default=255, ge=1)
    min_personal_message_title_length: int = Field(default=2, ge=1)
    min_first_post_length: int = Field(default=20, ge=1)
    min_personal_message_post_length: int = Field(default=10, ge=1)
    max_post_length: int = Field(default=32000, ge=1)
    max_email_length: int = Field(default=254, ge=3)

    def merged(self, **overrides: Any) -> "SiteSettings":
        return self.model_validate({**self.model_dump(), **overrides})


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name, field in SiteSettings.model_fields.items():
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None or not raw.strip():
            continue
        value = raw.strip()
        if field.annotation is bool:
            overrides[name] = value.lower() in {"1", "true", "yes", "on"}
        else:
            overrides[name] = int(value)
    return overrides


def load_site_settings(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> SiteSettings:
    """Build settings from ``TOPICBOARD_*`` environment variables plus explicit overrides."""
    values = _env_overrides(os.environ if environ is None else environ)
    values.update(overrides)
    return SiteSettings(**values)
