from __future__ import annotations

from typing import Optional

from .config import SiteSettings
from .models import Category, User


class Guardian:
    """Answers "may this user do X" for a single acting user.

    An anonymous guardian (``user=None``) can do nothing that writes. Staged and
    inactive accounts are treated the same way: they exist only as recipients.
    """

    def __init__(self, user: Optional[User], settings: SiteSettings) -> None:
        self.user = user
        self.settings = settings

    @property
    def is_staff(self) -> bool:
        return bool(self.user and self.user.staff)

    def _can_act(self) -> bool:
        return bool(self.user and self.user.active and not self.user.staged)

    def _has_trust_level(self, level: int) -> bool:
        return self._can_act() and int(self.user.trustLevel) >= int(level)

    def can_create_topic(self, category: Optional[Category] = None) -> bool:
        if not self._can_act():
            return False
        if category is not None and not self.can_create_topic_on_category(category):
            return False
        if self.is_staff:
            return True
        return self._has_trust_level(self.settings.min_trust_to_create_topic)

    def can_create_topic_on_category(self, category: Category) -> bool:
        if not self._can_act():
            return False
        return not category.readRestricted or self.is_staff

    def can_send_private_message(self) -> bool:
        if not self._can_act():
            return False
        if self.is_staff:
            return True
        return self._has_trust_level(self.settings.min_trust_to_send_messages)

    def can_send_private_messages_to_email(self) -> bool:
        if not self.settings.enable_private_email_messages:
            return False
        if not self.can_send_private_message():
            return False
        if self.is_staff:
            return True
        return self._has_trust_level(self.settings.min_trust_to_send_email_messages)

    def can_pin_topics(self) -> bool:
        return self._can_act() and self.is_staff
