from __future__ import annotations

import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from pydantic import ValidationError  # noqa: E402

from topicboard.config import SiteSettings, load_site_settings  # noqa: E402
from topicboard.trust import TrustLevel  # noqa: E402


class SiteSettingsTests(unittest.TestCase):
    def test_defaults(self):
        settings = load_site_settings(environ={})
        self.assertEqual(settings.min_trust_to_create_topic, TrustLevel.NEW)
        self.assertEqual(settings.min_trust_to_send_messages, TrustLevel.BASIC)
        self.assertFalse(settings.enable_private_email_messages)
        self.assertFalse(settings.allow_duplicate_topic_titles)
        self.assertTrue(settings.enable_staged_users)

    def test_environment_overrides(self):
        settings = load_site_settings(
            environ={
                "TOPICBOARD_MIN_TRUST_TO_SEND_MESSAGES": "4",
                "TOPICBOARD_ENABLE_PRIVATE_EMAIL_MESSAGES": "true",
                "TOPICBOARD_ALLOW_DUPLICATE_TOPIC_TITLES": "0",
                "TOPICBOARD_MIN_TOPIC_TITLE_LENGTH": " ",
            }
        )
        self.assertEqual(settings.min_trust_to_send_messages, TrustLevel.LEADER)
        self.assertTrue(settings.enable_private_email_messages)
        self.assertFalse(settings.allow_duplicate_topic_titles)
        self.assertEqual(settings.min_topic_title_length, 15)

    def test_explicit_overrides_win_over_environment(self):
        settings = load_site_settings(
            environ={"TOPICBOARD_MIN_TRUST_TO_CREATE_TOPIC": "3"},
            min_trust_to_create_topic=TrustLevel.BASIC,
        )
        self.assertEqual(settings.min_trust_to_create_topic, TrustLevel.BASIC)

    def test_invalid_trust_level_is_rejected(self):
        with self.assertRaises(ValidationError):
            load_site_settings(environ={"TOPICBOARD_MIN_TRUST_TO_CREATE_TOPIC": "9"})

    def test_settings_are_frozen(self):
        settings = SiteSettings()
        with self.assertRaises(ValidationError):
            settings.allow_duplicate_topic_titles = True
        self.assertTrue(settings.merged(allow_duplicate_topic_titles=True).allow_duplicate_topic_titles)


if __name__ == "__main__":
    unittest.main()
