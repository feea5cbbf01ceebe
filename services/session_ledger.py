"""
Session Block Ledger - the lifecycle of prepaid session blocks.

A customer buys blocks of N sessions. Exactly zero or one block per customer
is ACTIVE and is drawn down by appointment outcomes; later purchases wait as
PENDING and are promoted oldest-first (purchase_date) when the active block
reaches zero.

Every operation:
1. Locks the customer row and the customer's block rows (SELECT ... FOR UPDATE),
   so concurrent requests for the same customer serialize here
2. Decides from the locked state and mutates it
3. Appends SessionTransaction audit rows
4. Flushes, but never commits; the caller owns the transaction

Rule violations raise the errors in services.errors and leave the caller's
transaction to be rolled back.
"""
import logging
from datetime import datetime
from typing import List, NamedTuple, Optional

from sqlalchemy.orm import Session
from sqlalchemy import desc

import config
from models import Customer, SessionBlock, SessionBlockStatus, SessionTransaction, SessionTransactionType
from services.errors import (
     BlockNotFound,
     CustomerNotFound,
     Downgrade,
     HasConsumption,
     InvalidPackSize,
     InvalidSessionCount,
     MultipleActiveBlocks,
     NoActiveSessions,
     NoTargetBlock,
     NotPending,
     PendingBlockExists,
     RefundWouldDuplicateActive,
)

logger = logging.getLogger(__name__)


class ConsumeResult(NamedTuple):
     block_id: int
     remaining: int
     completed: bool
     activated_block_id: Optional[int]


class RefundResult(NamedTuple):
     block_id: int
     new_remaining: int
     refunded: int
     status: SessionBlockStatus


def _utcnow() -> datetime:
     return datetime.utcnow()


# ---------------------------------------------------------------------------
# Locking and selection helpers
# ---------------------------------------------------------------------------

def _lock_customer_blocks(db: Session, customer_id: int) -> List[SessionBlock]:
     """
     Lock the customer and all of their blocks for the rest of the transaction.

     The customer row is locked too so that a customer with no blocks yet
     still serializes concurrent purchases.
     """
     db.flush()
     customer = (
          db.query(Customer)
          .filter(Customer.id == customer_id)
          .with_for_update()
          .first()
     )
     if customer is None:
          raise CustomerNotFound(customer_id)

     return (
          db.query(SessionBlock)
          .filter(SessionBlock.customer_id == customer_id)
          .order_by(SessionBlock.id)
          .with_for_update()
          .populate_existing()
          .all()
     )


def _active_blocks(blocks: List[SessionBlock]) -> List[SessionBlock]:
     return [b for b in blocks if b.status == SessionBlockStatus.ACTIVE]


def _pending_fifo(blocks: List[SessionBlock]) -> List[SessionBlock]:
     pending = [b for b in blocks if b.status == SessionBlockStatus.PENDING]
     return sorted(pending, key=lambda b: (b.purchase_date, b.id))


def _current_active(customer_id: int, blocks: List[SessionBlock]) -> Optional[SessionBlock]:
     active = _active_blocks(blocks)
     if len(active) > 1:
          # Only reachable with rows written outside the ledger
          logger.error(
               "Customer %s has %s active blocks (%s); drawing from the oldest",
               customer_id, len(active), [b.id for b in active],
          )
          active.sort(key=lambda b: (b.activation_date or datetime.min, b.id))
     return active[0] if active else None


def _find_block(db: Session, block_id: int, customer_id: Optional[int]) -> SessionBlock:
     """Load a block and re-read it under the customer's lock."""
     block = db.query(SessionBlock).filter(SessionBlock.id == block_id).first()
     if block is None or (customer_id is not None and block.customer_id != customer_id):
          raise BlockNotFound(block_id)

     for locked in _lock_customer_blocks(db, block.customer_id):
          if locked.id == block_id:
               return locked
     raise BlockNotFound(block_id)


def _record(
     db: Session,
     block: SessionBlock,
     transaction_type: SessionTransactionType,
     amount: int,
     appointment_id: Optional[int] = None,
     created_by_user_id: Optional[int] = None,
     notes: Optional[str] = None,
) -> SessionTransaction:
     entry = SessionTransaction(
          session_block_id=block.id,
          customer_id=block.customer_id,
          studio_id=block.studio_id,
          transaction_type=transaction_type,
          amount=amount,
          appointment_id=appointment_id,
          created_by_user_id=created_by_user_id,
          payment_method=block.payment_method,
          notes=notes,
     )
     db.add(entry)
     return entry


def validate_pack_size(total_sessions: int) -> None:
     """Raise InvalidPackSize unless total_sessions is a configured pack size."""
     allowed = config.SESSION_PACK_SIZES
     if total_sessions not in allowed:
          raise InvalidPackSize(total_sessions, allowed)


# ---------------------------------------------------------------------------
# Ledger operations
# ---------------------------------------------------------------------------

def create_block(
     db: Session,
     customer_id: int,
     studio_id: int,
     total_sessions: int,
     payment_method: Optional[str] = None,
     notes: Optional[str] = None,
     created_by_user_id: Optional[int] = None,
     purchase_date: Optional[datetime] = None,
) -> SessionBlock:
     """
     Record a purchased block of sessions.

     The block starts ACTIVE when the customer has no active block, PENDING
     otherwise. No other block changes.

     Raises:
          InvalidPackSize: total_sessions is not an offered pack size
          CustomerNotFound: customer missing or not a customer of studio_id
          PendingBlockExists: a pending block exists and only one is allowed
     """
     validate_pack_size(total_sessions)

     customer = db.query(Customer).filter(Customer.id == customer_id).first()
     if customer is None or customer.studio_id != studio_id:
          raise CustomerNotFound(customer_id, studio_id)

     blocks = _lock_customer_blocks(db, customer_id)
     active = _current_active(customer_id, blocks)
     if not config.ALLOW_MULTIPLE_PENDING_BLOCKS and _pending_fifo(blocks):
          raise PendingBlockExists(customer_id)

     now = _utcnow()
     block = SessionBlock(
          customer_id=customer_id,
          studio_id=studio_id,
          total_sessions=total_sessions,
          remaining_sessions=total_sessions,
          status=SessionBlockStatus.PENDING if active else SessionBlockStatus.ACTIVE,
          activation_date=None if active else now,
          purchase_date=purchase_date or now,
          payment_method=payment_method or config.DEFAULT_PAYMENT_METHOD,
          notes=notes,
     )
     db.add(block)
     db.flush()

     _record(
          db, block, SessionTransactionType.PURCHASE, total_sessions,
          created_by_user_id=created_by_user_id,
          notes=notes or f"Purchased {total_sessions} sessions",
     )
     db.flush()

     logger.info(
          "Created %s block %s (%s sessions) for customer %s",
          block.status.value, block.id, total_sessions, customer_id,
     )
     return block


def consume_session(
     db: Session,
     customer_id: int,
     count: int = 1,
     appointment_id: Optional[int] = None,
     created_by_user_id: Optional[int] = None,
     notes: Optional[str] = None,
) -> ConsumeResult:
     """
     Draw ``count`` sessions from the customer's active block.

     When the block reaches zero it is COMPLETED and the oldest pending block
     is activated in the same transaction. Pending blocks are never drawn from.

     Not idempotent: callers consuming for an appointment must guard against
     double consumption (see services.appointment_service).

     Raises:
          InvalidSessionCount: count < 1
          NoActiveSessions: no active block, or fewer than count remaining
     """
     if count < 1:
          raise InvalidSessionCount(count)

     blocks = _lock_customer_blocks(db, customer_id)
     active = _current_active(customer_id, blocks)
     if active is None:
          raise NoActiveSessions(customer_id, count)
     if active.remaining_sessions < count:
          raise NoActiveSessions(customer_id, count, available=active.remaining_sessions, has_active=True)

     active.remaining_sessions -= count
     _record(
          db, active, SessionTransactionType.DEDUCTION, -count,
          appointment_id=appointment_id,
          created_by_user_id=created_by_user_id,
          notes=notes or "Session deducted",
     )

     activated = None
     completed = active.remaining_sessions == 0
     if completed:
          active.mark_as_completed()
          # The completed state must reach the database before another block
          # becomes active, or the one-active index rejects the update.
          db.flush()
          logger.info("Block %s of customer %s completed", active.id, customer_id)
          still_active = _active_blocks(blocks)
          if still_active:
               # Legacy rows: another block is already active, nothing to promote
               logger.warning(
                    "Customer %s still has active block(s) %s; pending blocks stay pending",
                    customer_id, [b.id for b in still_active],
               )
          else:
               activated = activate_next_pending(db, customer_id, created_by_user_id=created_by_user_id)
     db.flush()

     return ConsumeResult(
          block_id=active.id,
          remaining=active.remaining_sessions,
          completed=completed,
          activated_block_id=activated.id if activated else None,
     )


def activate_next_pending(
     db: Session,
     customer_id: int,
     created_by_user_id: Optional[int] = None,
     notes: Optional[str] = None,
) -> Optional[SessionBlock]:
     """
     Promote the customer's oldest pending block (by purchase_date) to ACTIVE.

     Returns the activated block, or None when nothing is pending.

     Raises:
          MultipleActiveBlocks: the customer still has an active block
     """
     blocks = _lock_customer_blocks(db, customer_id)
     active = _active_blocks(blocks)
     if active:
          raise MultipleActiveBlocks(customer_id, active[0].id)

     pending = _pending_fifo(blocks)
     if not pending:
          return None

     block = pending[0]
     block.activate(_utcnow())
     _record(
          db, block, SessionTransactionType.ACTIVATION, 0,
          created_by_user_id=created_by_user_id,
          notes=notes or "Activated next pending block",
     )
     db.flush()

     logger.info("Activated pending block %s for customer %s", block.id, customer_id)
     return block


def refund_session(
     db: Session,
     customer_id: int,
     count: int,
     target_block_id: Optional[int] = None,
     created_by_user_id: Optional[int] = None,
     notes: Optional[str] = None,
) -> RefundResult:
     """
     Give back up to ``count`` sessions.

     Refunds go to target_block_id, or to the most recently created active
     block. The refund is silently capped at the block's total_sessions.

     A completed block that regains sessions becomes active again, but only
     when no other block of the customer is active.

     Raises:
          InvalidSessionCount: count < 1
          NoTargetBlock: no such block for the customer, or no active block
          RefundWouldDuplicateActive: reviving the block would make two active
     """
     if count < 1:
          raise InvalidSessionCount(count)

     blocks = _lock_customer_blocks(db, customer_id)
     if target_block_id is not None:
          target = next((b for b in blocks if b.id == target_block_id), None)
          if target is None or target.status == SessionBlockStatus.CANCELLED:
               raise NoTargetBlock(customer_id, target_block_id)
     else:
          active = sorted(_active_blocks(blocks), key=lambda b: b.id, reverse=True)
          if not active:
               raise NoTargetBlock(customer_id)
          target = active[0]

     new_remaining = min(target.remaining_sessions + count, target.total_sessions)
     refunded = new_remaining - target.remaining_sessions

     if target.status == SessionBlockStatus.COMPLETED and new_remaining > 0:
          other_active = [b for b in _active_blocks(blocks) if b.id != target.id]
          if other_active:
               logger.warning(
                    "Refused refund to completed block %s: block %s is active",
                    target.id, other_active[0].id,
               )
               raise RefundWouldDuplicateActive(target.id, other_active[0].id)
          target.activate(_utcnow())
          logger.info("Refund reactivated completed block %s for customer %s", target.id, customer_id)

     target.remaining_sessions = new_remaining
     if refunded:
          _record(
               db, target, SessionTransactionType.REFUND, refunded,
               created_by_user_id=created_by_user_id,
               notes=notes or f"Refunded {refunded} session(s)",
          )
     db.flush()

     if refunded < count:
          logger.info(
               "Refund to block %s capped: %s requested, %s applied", target.id, count, refunded
          )
     return RefundResult(
          block_id=target.id,
          new_remaining=new_remaining,
          refunded=refunded,
          status=target.status,
     )


def edit_pending_block(
     db: Session,
     block_id: int,
     new_total_sessions: int,
     payment_method: Optional[str] = None,
     notes: Optional[str] = None,
     customer_id: Optional[int] = None,
     created_by_user_id: Optional[int] = None,
) -> SessionBlock:
     """
     Upgrade a pending block to a bigger pack.

     total_sessions and remaining_sessions are both reset to the new size;
     pending blocks have never been drawn from, so nothing is lost.

     Raises:
          BlockNotFound: no such block (for this customer)
          InvalidPackSize: new size is not an offered pack size
          NotPending: block is not pending
          Downgrade: new size is smaller than the current one
     """
     block = _find_block(db, block_id, customer_id)
     validate_pack_size(new_total_sessions)

     if block.status != SessionBlockStatus.PENDING:
          raise NotPending(block.id, block.status.value)
     if new_total_sessions < block.total_sessions:
          raise Downgrade(block.total_sessions, new_total_sessions)

     old_total = block.total_sessions
     block.total_sessions = new_total_sessions
     block.remaining_sessions = new_total_sessions
     if payment_method:
          block.payment_method = payment_method
     if notes is not None:
          block.notes = notes

     _record(
          db, block, SessionTransactionType.EDIT, new_total_sessions - old_total,
          created_by_user_id=created_by_user_id,
          notes=f"Pending block changed from {old_total} to {new_total_sessions} sessions",
     )
     db.flush()

     logger.info("Edited pending block %s: %s -> %s sessions", block.id, old_total, new_total_sessions)
     return block


def delete_block(
     db: Session,
     block_id: int,
     customer_id: Optional[int] = None,
     created_by_user_id: Optional[int] = None,
) -> int:
     """
     Hard-delete a block that has never been drawn from.

     Returns the block's total_sessions (reported to the caller as refunded).
     Other blocks are not touched; deleting the active block can leave the
     customer with pending blocks only, which reconcile_stuck_pending repairs.

     Raises:
          BlockNotFound: no such block (for this customer)
          HasConsumption: at least one session was used
     """
     block = _find_block(db, block_id, customer_id)
     if not block.is_unused:
          raise HasConsumption(block.id, block.used_sessions)

     refunded = block.total_sessions
     _record(
          db, block, SessionTransactionType.DELETION, -refunded,
          created_by_user_id=created_by_user_id,
          notes=f"Deleted {block.status.value} block of {refunded} sessions",
     )
     db.delete(block)
     db.flush()

     logger.info(
          "Deleted %s block %s (%s sessions) of customer %s",
          block.status.value, block.id, refunded, block.customer_id,
     )
     return refunded


def reconcile_stuck_pending(
     db: Session,
     customer_id: int,
     created_by_user_id: Optional[int] = None,
) -> Optional[SessionBlock]:
     """
     Promote the oldest pending block when the customer has no active block.

     Safe to repeat: returns None without changes when a block is already
     active or nothing is pending.
     """
     blocks = _lock_customer_blocks(db, customer_id)
     if _active_blocks(blocks) or not _pending_fifo(blocks):
          return None

     logger.warning("Customer %s had pending blocks but no active block", customer_id)
     return activate_next_pending(
          db, customer_id,
          created_by_user_id=created_by_user_id,
          notes="Activated by reconciliation",
     )


# ---------------------------------------------------------------------------
# Read helpers
# ---------------------------------------------------------------------------

def list_blocks(db: Session, customer_id: int) -> List[SessionBlock]:
     """Active block first, then pending in activation order, then the rest newest first."""
     blocks = db.query(SessionBlock).filter(SessionBlock.customer_id == customer_id).all()
     active = _active_blocks(blocks)
     pending = _pending_fifo(blocks)
     rest = sorted(
          (b for b in blocks if b.status not in (SessionBlockStatus.ACTIVE, SessionBlockStatus.PENDING)),
          key=lambda b: b.id,
          reverse=True,
     )
     return active + pending + rest


def session_summary(db: Session, customer_id: int) -> dict:
     """
     Totals shown next to a customer in the admin UI.

     Returns:
          Dictionary with remaining counts per state and lifetime purchases
     """
     blocks = db.query(SessionBlock).filter(SessionBlock.customer_id == customer_id).all()
     active = _active_blocks(blocks)
     pending = _pending_fifo(blocks)

     return {
          "customer_id": customer_id,
          "active_block_id": active[0].id if active else None,
          "active_sessions": sum(b.remaining_sessions for b in active),
          "pending_sessions": sum(b.remaining_sessions for b in pending),
          "pending_blocks": len(pending),
          "remaining_sessions": sum(b.remaining_sessions for b in active + pending),
          "total_sessions_purchased": sum(b.total_sessions for b in blocks),
          "has_active_sessions": any(b.remaining_sessions > 0 for b in active),
     }


def list_transactions(db: Session, customer_id: int, limit: int = 50) -> List[SessionTransaction]:
     return (
          db.query(SessionTransaction)
          .filter(SessionTransaction.customer_id == customer_id)
          .order_by(desc(SessionTransaction.id))
          .limit(limit)
          .all()
     )
