"""Closed enumerations shared by models, schemas and services."""

import enum


class SessionStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionType(str, enum.Enum):
    TRIAL = "trial"
    MEMBER = "member"
    CONTRACTUAL = "contractual"
    MAKEUP = "makeup"
    MULTI_SITE = "multi_site"
    COLLABORATION = "collaboration"
    NON_BOOKABLE = "non_bookable"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class MemberType(str, enum.Enum):
    TRIAL = "trial"
    FULL = "full"
    COLLABORATION = "collaboration"


def enum_values(enum_cls):
    return [member.value for member in enum_cls]
