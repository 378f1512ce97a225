"""
Expense models: the expense, its split participants and optional line items.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from planner.db.base import BaseModel


class Expense(BaseModel):
    """A single payment made by one group member for a trip."""
    __tablename__ = "expenses"

    description = Column(String(255), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    category = Column(String(100), nullable=True)
    owner_id = Column(Integer, ForeignKey("group_members.id"), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    day_id = Column(Integer, ForeignKey("trip_days.id", ondelete="SET NULL"), nullable=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True)

    # Relationships
    owner = relationship("GroupMember", back_populates="expenses_owned")
    trip = relationship("Trip", back_populates="expenses")
    day = relationship("TripDay")
    event = relationship("Event")
    participants = relationship("ExpenseParticipant", back_populates="expense", cascade="all, delete-orphan")
    line_items = relationship("ExpenseLineItem", back_populates="expense", cascade="all, delete-orphan")


class ExpenseParticipant(BaseModel):
    """Share of an expense attributed to a member or an external person."""
    __tablename__ = "expense_participants"

    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("group_members.id"), nullable=True, index=True)
    external_participant_id = Column(Integer, ForeignKey("external_participants.id", ondelete="SET NULL"), nullable=True, index=True)
    external_name = Column(String(255), nullable=True)
    split_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    amount_owed = Column(Numeric(10, 2), nullable=False)

    # Relationships
    expense = relationship("Expense", back_populates="participants")
    participant = relationship("GroupMember")
    external_participant = relationship("ExternalParticipant")

    __table_args__ = (
        UniqueConstraint('expense_id', 'participant_id', name='uq_expense_participant'),
        UniqueConstraint('expense_id', 'external_name', name='uq_expense_external_name'),
    )


class ExpenseLineItem(BaseModel):
    """Itemized part of an expense with its own split."""
    __tablename__ = "expense_line_items"

    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    category = Column(String(100), nullable=True)

    # Relationships
    expense = relationship("Expense", back_populates="line_items")
    participants = relationship("LineItemParticipant", back_populates="line_item", cascade="all, delete-orphan")


class LineItemParticipant(BaseModel):
    """Share of a line item attributed to a member or an external person."""
    __tablename__ = "line_item_participants"

    line_item_id = Column(Integer, ForeignKey("expense_line_items.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id = Column(Integer, ForeignKey("group_members.id", ondelete="SET NULL"), nullable=True, index=True)
    external_participant_id = Column(Integer, ForeignKey("external_participants.id", ondelete="SET NULL"), nullable=True, index=True)
    external_name = Column(String(255), nullable=True)
    split_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    amount_owed = Column(Numeric(10, 2), nullable=False)

    # Relationships
    line_item = relationship("ExpenseLineItem", back_populates="participants")
    participant = relationship("GroupMember")
    external_participant = relationship("ExternalParticipant")

    __table_args__ = (
        UniqueConstraint('line_item_id', 'participant_id', name='uq_line_item_participant'),
        UniqueConstraint('line_item_id', 'external_name', name='uq_line_item_external_name'),
    )
