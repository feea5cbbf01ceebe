"""
SessionBlock model - one purchased pack of prepaid sessions.

At most one block per customer is ACTIVE; further purchases queue as PENDING
and are promoted oldest-first (purchase_date) when the active block is used up.
The partial unique index below backs that invariant at the database level.
"""
import enum
from datetime import datetime

from sqlalchemy import (
     CheckConstraint,
     Column,
     DateTime,
     Enum,
     ForeignKey,
     Index,
     Integer,
     String,
     Text,
     text,
)
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin


class SessionBlockStatus(str, enum.Enum):
     """Lifecycle states of a session block."""
     ACTIVE = "active"
     PENDING = "pending"
     COMPLETED = "completed"
     CANCELLED = "cancelled"


ACTIVE_ONLY = text("status = 'active'")


class SessionBlock(TimestampMixin, Base):
     """
     Session block owned by one customer at one studio.
     Mutated only through services.session_ledger.
     """
     __table_args__ = (
          CheckConstraint("total_sessions > 0", name="ck_session_blocks_total_positive"),
          CheckConstraint(
               "remaining_sessions >= 0 AND remaining_sessions <= total_sessions",
               name="ck_session_blocks_remaining_bounds",
          ),
          Index("ix_session_blocks_customer_status", "customer_id", "status"),
          Index(
               "ux_session_blocks_one_active_per_customer",
               "customer_id",
               unique=True,
               sqlite_where=ACTIVE_ONLY,
               postgresql_where=ACTIVE_ONLY,
               mssql_where=ACTIVE_ONLY,
          ),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)

     # Foreign keys
     customer_id = Column(
          Integer,
          ForeignKey("customers.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     studio_id = Column(
          Integer,
          ForeignKey("studios.id", ondelete="NO ACTION"),
          nullable=False,
          index=True
     )

     # Session counts
     total_sessions = Column(Integer, nullable=False)
     remaining_sessions = Column(Integer, nullable=False)
     status = Column(
          Enum(
               SessionBlockStatus,
               name="session_block_status",
               create_constraint=True,
               values_callable=lambda statuses: [s.value for s in statuses],
          ),
          default=SessionBlockStatus.PENDING,
          nullable=False,
          index=True
     )

     # Provenance
     activation_date = Column(DateTime, nullable=True)
     purchase_date = Column(DateTime, default=datetime.utcnow, nullable=False)
     payment_method = Column(String(50), default="cash", nullable=False)
     notes = Column(Text, nullable=True)

     # Relationships
     customer = relationship("Customer", back_populates="session_blocks")

     def __repr__(self):
          return (
               f"<SessionBlock(id={self.id}, customer_id={self.customer_id}, "
               f"{self.remaining_sessions}/{self.total_sessions}, status='{self.status.value}')>"
          )

     @property
     def used_sessions(self) -> int:
          return self.total_sessions - self.remaining_sessions

     @property
     def is_unused(self) -> bool:
          """True when no session of this block has been consumed."""
          return self.remaining_sessions == self.total_sessions

     def activate(self, when: datetime) -> None:
          """Make this block the one being drawn down."""
          self.status = SessionBlockStatus.ACTIVE
          self.activation_date = when

     def mark_as_completed(self) -> None:
          """Mark the block as used up."""
          self.status = SessionBlockStatus.COMPLETED
