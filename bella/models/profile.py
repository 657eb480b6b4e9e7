"""
UserProfile Model for Bella Planner.

Stores the onboarding profile as a single JSON document per user. The
document shape is owned by the onboarding flow; the planner only reads the
sections it renders (`personal`, `professional`, `schedule`, `workStyle`,
`wellness`, `commitments`).
"""

from sqlalchemy import JSON, Column, DateTime, String

from bella.models.base import Base, utcnow


class UserProfile(Base):
    """Profile document keyed by user id."""

    __tablename__ = "user_profiles"

    user_id = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<UserProfile(user_id={self.user_id})>"


__all__ = ["UserProfile"]
