"""
Member model: read-only source of waitlist priority tiers.

Membership and identity are owned by another system; this table is the
projection the tier lookup reads. Nothing in the admission core writes it.
"""

from sqlalchemy import Column, Integer, String

from rsvp_admission.db.base import Base, TimestampMixin


class Member(Base, TimestampMixin):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(String(100), unique=True, index=True, nullable=False)
    membership_tier = Column(String(20), nullable=False, default="free")

    def __repr__(self) -> str:
        return f"<Member(subject={self.subject_id}, tier={self.membership_tier})>"
