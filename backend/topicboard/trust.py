from __future__ import annotations

from enum import IntEnum


class TrustLevel(IntEnum):
    NEW = 0
    BASIC = 1
    MEMBER = 2
    REGULAR = 3
    LEADER = 4


class NotificationLevel(IntEnum):
    MUTED = 0
    REGULAR = 1
    TRACKING = 2
    WATCHING = 3


class NotificationReason(IntEnum):
    CREATED_TOPIC = 1
    CREATED_POST = 2


class Archetype:
    REGULAR = "regular"
    PRIVATE_MESSAGE = "private_message"

    ALL = (REGULAR, PRIVATE_MESSAGE)


class TopicSubtype:
    USER_TO_USER = "user_to_user"


class TimerStatus:
    CLOSE = "close"
