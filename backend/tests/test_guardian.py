from __future__ import annotations

import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from topicboard.config import SiteSettings  # noqa: E402
from topicboard.guardian import Guardian  # noqa: E402
from topicboard.models import Category, User  # noqa: E402
from topicboard.trust import TrustLevel  # noqa: E402


def user(trust_level: int = 0, **extra) -> User:
    return User(id="user-1", username="someone", trustLevel=trust_level, createdAt="2026-01-01T00:00:00.000Z", **extra)


class GuardianTests(unittest.TestCase):
    def test_anonymous_can_do_nothing(self):
        guardian = Guardian(None, SiteSettings(enable_private_email_messages=True))
        self.assertFalse(guardian.is_staff)
        self.assertFalse(guardian.can_create_topic())
        self.assertFalse(guardian.can_send_private_message())
        self.assertFalse(guardian.can_send_private_messages_to_email())

    def test_topic_creation_follows_trust_minimum(self):
        settings = SiteSettings(min_trust_to_create_topic=TrustLevel.MEMBER)
        self.assertFalse(Guardian(user(TrustLevel.BASIC), settings).can_create_topic())
        self.assertTrue(Guardian(user(TrustLevel.MEMBER), settings).can_create_topic())
        self.assertTrue(Guardian(user(TrustLevel.LEADER), settings).can_create_topic())

    def test_staff_bypass_trust_minimum(self):
        settings = SiteSettings(min_trust_to_create_topic=TrustLevel.LEADER)
        self.assertTrue(Guardian(user(admin=True), settings).can_create_topic())
        self.assertTrue(Guardian(user(moderator=True), settings).can_create_topic())

    def test_staged_and_inactive_users_cannot_act(self):
        settings = SiteSettings()
        self.assertFalse(Guardian(user(TrustLevel.LEADER, staged=True), settings).can_create_topic())
        self.assertFalse(Guardian(user(TrustLevel.LEADER, active=False), settings).can_send_private_message())

    def test_restricted_category_needs_staff(self):
        category = Category(id="category-1", name="Staff", slug="staff", readRestricted=True, createdAt="x")
        settings = SiteSettings()
        self.assertFalse(Guardian(user(TrustLevel.LEADER), settings).can_create_topic(category))
        self.assertTrue(Guardian(user(moderator=True), settings).can_create_topic(category))

    def test_private_message_threshold(self):
        settings = SiteSettings(min_trust_to_send_messages=TrustLevel.REGULAR, min_trust_to_create_topic=TrustLevel.NEW)
        self.assertFalse(Guardian(user(TrustLevel.MEMBER), settings).can_send_private_message())
        self.assertTrue(Guardian(user(TrustLevel.REGULAR), settings).can_send_private_message())

    def test_email_messages_need_feature_and_trust(self):
        disabled = SiteSettings(min_trust_to_send_email_messages=TrustLevel.BASIC)
        enabled = disabled.merged(enable_private_email_messages=True)
        self.assertFalse(Guardian(user(TrustLevel.MEMBER), disabled).can_send_private_messages_to_email())
        self.assertTrue(Guardian(user(TrustLevel.MEMBER), enabled).can_send_private_messages_to_email())
        strict = enabled.merged(min_trust_to_send_email_messages=TrustLevel.LEADER)
        self.assertFalse(Guardian(user(TrustLevel.MEMBER), strict).can_send_private_messages_to_email())
        self.assertTrue(Guardian(user(admin=True), strict).can_send_private_messages_to_email())


if __name__ == "__main__":
    unittest.main()
