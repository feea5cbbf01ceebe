"""
Maintenance Service - repair and audit of the session block invariants.

The ledger activates the next pending block whenever the active one is used
up, so customers with pending blocks but no active block should not exist.
Rows written by older code paths (or a deleted active block) can still leave
them behind; reconciliation promotes the oldest pending block and is safe to
run on a schedule.
"""
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import SessionBlock, SessionBlockStatus
from services import session_ledger

logger = logging.getLogger(__name__)


def _customers_with_status(db: Session, status: SessionBlockStatus, studio_id: Optional[int]):
     query = db.query(SessionBlock.customer_id).filter(SessionBlock.status == status)
     if studio_id is not None:
          query = query.filter(SessionBlock.studio_id == studio_id)
     return {row[0] for row in query.distinct().all()}


def find_stuck_customers(db: Session, studio_id: Optional[int] = None) -> List[int]:
     """Customers that have pending blocks but no active block."""
     pending = _customers_with_status(db, SessionBlockStatus.PENDING, studio_id)
     active = _customers_with_status(db, SessionBlockStatus.ACTIVE, studio_id)
     return sorted(pending - active)


def find_multiple_active(db: Session, studio_id: Optional[int] = None) -> List[dict]:
     """Customers with more than one active block. Reported, never auto-fixed."""
     query = (
          db.query(SessionBlock.customer_id, func.count(SessionBlock.id))
          .filter(SessionBlock.status == SessionBlockStatus.ACTIVE)
     )
     if studio_id is not None:
          query = query.filter(SessionBlock.studio_id == studio_id)
     rows = (
          query.group_by(SessionBlock.customer_id)
          .having(func.count(SessionBlock.id) > 1)
          .all()
     )
     return [{"customer_id": customer_id, "active_blocks": count} for customer_id, count in rows]


def find_invariant_violations(db: Session, studio_id: Optional[int] = None) -> dict:
     return {
          "multiple_active": find_multiple_active(db, studio_id),
          "stuck_pending": find_stuck_customers(db, studio_id),
     }


def reconcile_customer(db: Session, customer_id: int, acting_user_id: Optional[int] = None) -> Optional[int]:
     """Reconcile one customer. Returns the promoted block id, if any."""
     block = session_ledger.reconcile_stuck_pending(db, customer_id, created_by_user_id=acting_user_id)
     return block.id if block else None


def reconcile_all(
     db: Session,
     studio_id: Optional[int] = None,
     acting_user_id: Optional[int] = None,
) -> List[int]:
     """
     Reconcile every stuck customer (optionally of one studio).

     Returns:
          Ids of the blocks that were activated
     """
     promoted = []
     for customer_id in find_stuck_customers(db, studio_id):
          block_id = reconcile_customer(db, customer_id, acting_user_id)
          if block_id is not None:
               promoted.append(block_id)

     logger.info("Reconciliation activated %s block(s): %s", len(promoted), promoted)
     return promoted
