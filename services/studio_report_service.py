"""
Studio Report Service - per-studio session statistics for the owner dashboard.

Read-only: everything here is derived from the session_transactions audit
trail and the current state of session_blocks.
"""
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from models import Customer, SessionBlock, SessionBlockStatus, SessionTransaction, SessionTransactionType, Studio
from services.errors import InvalidDateRange, StudioNotFound

DEFAULT_STATS_DAYS = 30


def _get_studio(db: Session, studio_id: int) -> Studio:
     studio = db.query(Studio).filter(Studio.id == studio_id).first()
     if not studio:
          raise StudioNotFound(studio_id)
     return studio


def studio_session_stats(
     db: Session,
     studio_id: int,
     from_date: Optional[date] = None,
     to_date: Optional[date] = None,
) -> dict:
     """
     Session movements of a studio within [from_date, to_date] (whole days, UTC).

     Defaults to the last 30 days up to today.

     Returns:
          Dictionary with per-type transaction counts and session sums, plus
          the studio's current active/pending block totals
     """
     _get_studio(db, studio_id)

     to_date = to_date or datetime.utcnow().date()
     from_date = from_date or to_date - timedelta(days=DEFAULT_STATS_DAYS)
     if from_date > to_date:
          raise InvalidDateRange(from_date, to_date)

     rows = (
          db.query(
               SessionTransaction.transaction_type,
               func.count(SessionTransaction.id),
               func.coalesce(func.sum(SessionTransaction.amount), 0),
          )
          .filter(
               SessionTransaction.studio_id == studio_id,
               SessionTransaction.created_at >= datetime.combine(from_date, time.min),
               SessionTransaction.created_at < datetime.combine(to_date + timedelta(days=1), time.min),
          )
          .group_by(SessionTransaction.transaction_type)
          .all()
     )

     by_type = {t.value: {"count": 0, "sessions": 0} for t in SessionTransactionType}
     for transaction_type, count, sessions in rows:
          by_type[SessionTransactionType(transaction_type).value] = {"count": count, "sessions": int(sessions)}

     block_rows = (
          db.query(
               SessionBlock.status,
               func.count(SessionBlock.id),
               func.coalesce(func.sum(SessionBlock.remaining_sessions), 0),
          )
          .filter(
               SessionBlock.studio_id == studio_id,
               SessionBlock.status.in_([SessionBlockStatus.ACTIVE, SessionBlockStatus.PENDING]),
          )
          .group_by(SessionBlock.status)
          .all()
     )
     blocks = {SessionBlockStatus(status): (count, int(remaining)) for status, count, remaining in block_rows}
     active_count, active_remaining = blocks.get(SessionBlockStatus.ACTIVE, (0, 0))
     pending_count, pending_remaining = blocks.get(SessionBlockStatus.PENDING, (0, 0))

     return {
          "studio_id": studio_id,
          "from_date": from_date,
          "to_date": to_date,
          "total_transactions": sum(entry["count"] for entry in by_type.values()),
          "transactions": by_type,
          "purchases": by_type["purchase"]["count"],
          "deductions": by_type["deduction"]["count"],
          "refunds": by_type["refund"]["count"],
          # Upgrades of pending blocks add sessions just like purchases
          "sessions_added": by_type["purchase"]["sessions"] + by_type["edit"]["sessions"],
          "sessions_deducted": abs(by_type["deduction"]["sessions"]),
          "sessions_refunded": by_type["refund"]["sessions"],
          "sessions_removed": abs(by_type["deletion"]["sessions"]),
          "active_blocks": active_count,
          "total_remaining_sessions": active_remaining,
          "pending_blocks": pending_count,
          "pending_sessions": pending_remaining,
     }


def studio_customers_with_sessions(db: Session, studio_id: int) -> List[dict]:
     """Customers of a studio, by name, with their active block and queued sessions."""
     _get_studio(db, studio_id)

     pending = dict(
          db.query(SessionBlock.customer_id, func.sum(SessionBlock.remaining_sessions))
          .filter(
               SessionBlock.studio_id == studio_id,
               SessionBlock.status == SessionBlockStatus.PENDING,
          )
          .group_by(SessionBlock.customer_id)
          .all()
     )

     rows = (
          db.query(Customer, SessionBlock)
          .outerjoin(
               SessionBlock,
               and_(
                    SessionBlock.customer_id == Customer.id,
                    SessionBlock.status == SessionBlockStatus.ACTIVE,
               ),
          )
          .filter(Customer.studio_id == studio_id)
          .order_by(Customer.contact_last_name, Customer.contact_first_name, Customer.id)
          .all()
     )

     return [
          {
               "customer_id": customer.id,
               "first_name": customer.contact_first_name,
               "last_name": customer.contact_last_name,
               "phone": customer.contact_phone,
               "email": customer.contact_email,
               "registration_code": customer.registration_code,
               "active_block_id": block.id if block else None,
               "total_sessions": block.total_sessions if block else None,
               "remaining_sessions": block.remaining_sessions if block else 0,
               "pending_sessions": int(pending.get(customer.id) or 0),
               "has_active_sessions": bool(block and block.remaining_sessions > 0),
          }
          for customer, block in rows
     ]
