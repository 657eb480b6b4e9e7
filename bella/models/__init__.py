"""
Models package for Bella Planner.

This package exports all SQLAlchemy models.

Usage:
    from bella.models import ConversationSession, WeeklyPlan, UserProfile
"""

from bella.models.base import Base
from bella.models.profile import UserProfile
from bella.models.session import LIVE_STATUSES, ConversationSession, SessionStatus
from bella.models.weekly_plan import WEEKDAYS, PlanStatus, WeeklyPlan

__all__ = [
    "Base",
    "ConversationSession",
    "SessionStatus",
    "LIVE_STATUSES",
    "WeeklyPlan",
    "PlanStatus",
    "WEEKDAYS",
    "UserProfile",
]
