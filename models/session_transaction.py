"""
SessionTransaction model - append-only audit trail of session movements.

Every ledger operation writes one row per movement in the same database
transaction as the block change. Block and appointment ids are stored as
plain references so the trail survives hard deletion of a block.
"""
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, func
from .base import Base


class SessionTransactionType(str, enum.Enum):
     """Kinds of session movement."""
     PURCHASE = "purchase"
     DEDUCTION = "deduction"
     REFUND = "refund"
     EDIT = "edit"
     DELETION = "deletion"
     ACTIVATION = "activation"


class SessionTransaction(Base):
     """Immutable audit entry. Amount is the signed change in remaining sessions."""

     id = Column(Integer, primary_key=True, autoincrement=True)
     session_block_id = Column(Integer, nullable=False, index=True)
     customer_id = Column(Integer, nullable=False, index=True)
     studio_id = Column(Integer, nullable=False, index=True)

     transaction_type = Column(
          Enum(
               SessionTransactionType,
               name="session_transaction_type",
               create_constraint=True,
               values_callable=lambda types: [t.value for t in types],
          ),
          nullable=False,
          index=True
     )
     amount = Column(Integer, nullable=False)
     appointment_id = Column(Integer, nullable=True, index=True)
     created_by_user_id = Column(Integer, nullable=True)
     payment_method = Column(String(50), nullable=True)
     notes = Column(Text, nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     def __repr__(self):
          return (
               f"<SessionTransaction(id={self.id}, block={self.session_block_id}, "
               f"type='{self.transaction_type.value}', amount={self.amount})>"
          )
