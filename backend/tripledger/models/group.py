"""
Group and membership models.

Membership itself is managed elsewhere; these tables exist so expenses can
reference payers and participants by id.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import relationship
from tripledger.db.base import BaseModel


class Group(BaseModel):
    """A travel group owning trips, members and external participants."""
    __tablename__ = "travel_groups"

    name = Column(String(200), nullable=False)

    # Relationships
    members = relationship("GroupMember", back_populates="group", cascade="all, delete")
    trips = relationship("Trip", back_populates="group", cascade="all, delete")
    external_participants = relationship("ExternalParticipant", back_populates="group", cascade="all, delete")


class GroupMember(BaseModel):
    """A traveler belonging to a group."""
    __tablename__ = "group_members"

    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    traveler_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default="traveler")

    # Relationships
    group = relationship("Group", back_populates="members")


class ExternalParticipant(BaseModel):
    """Someone without an account who shares expenses, known only by name within a group."""
    __tablename__ = "external_participants"
    __table_args__ = (
        UniqueConstraint("group_id", "name", name="uq_external_participants_group_name"),
    )

    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    last_used_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Relationships
    group = relationship("Group", back_populates="external_participants")
