# routers/session_blocks.py
"""
Session block API routes.

Studio owners and managers sell, edit and delete session blocks and adjust
remaining sessions by hand (consume / refund). Every route is one database
transaction; ledger rule violations roll it back and are returned with the
message of the violated rule (see main.py exception handler).
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from auth import get_accessible_customer, require_staff
from database import get_session
from models import SessionBlock
from services import session_ledger
from schemas.session_block import (
     SessionBlockCreate,
     SessionBlockUpdate,
     SessionBlockResponse,
     SessionBlockListResponse,
     SessionSummary,
     ConsumeRequest,
     ConsumeResponse,
     RefundRequest,
     RefundResponse,
     DeleteBlockResponse,
     SessionTransactionResponse,
)

router = APIRouter(prefix="/api/customers", tags=["session-blocks"])


def build_block_response(block: SessionBlock) -> SessionBlockResponse:
     return SessionBlockResponse(
          id=block.id,
          customer_id=block.customer_id,
          studio_id=block.studio_id,
          total_sessions=block.total_sessions,
          remaining_sessions=block.remaining_sessions,
          used_sessions=block.used_sessions,
          status=block.status.value,
          activation_date=block.activation_date,
          purchase_date=block.purchase_date,
          payment_method=block.payment_method,
          notes=block.notes,
     )


@router.get(
     "/{customer_id}/session-blocks",
     response_model=SessionBlockListResponse,
     summary="List a customer's session blocks"
)
def list_session_blocks(
     customer_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     """
     All blocks of the customer: the active block first, then pending blocks
     in the order they will be activated, then completed/cancelled ones.
     """
     get_accessible_customer(db, token, customer_id)
     blocks = session_ledger.list_blocks(db, customer_id)
     return SessionBlockListResponse(
          blocks=[build_block_response(b) for b in blocks],
          summary=SessionSummary(**session_ledger.session_summary(db, customer_id)),
     )


@router.post(
     "/{customer_id}/session-blocks",
     response_model=SessionBlockResponse,
     status_code=status.HTTP_201_CREATED,
     summary="Sell a session block"
)
def create_session_block(
     customer_id: int,
     body: SessionBlockCreate,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     """
     Add a block to the customer.

     - Becomes **active** when the customer has no active block
     - Otherwise queued as **pending** until the active block is used up
     """
     customer = get_accessible_customer(db, token, customer_id)
     block = session_ledger.create_block(
          db,
          customer_id=customer.id,
          studio_id=customer.studio_id,
          total_sessions=body.total_sessions,
          payment_method=body.payment_method,
          notes=body.notes,
          created_by_user_id=token.get("id"),
     )
     return build_block_response(block)


@router.put(
     "/{customer_id}/session-blocks/{block_id}",
     response_model=SessionBlockResponse,
     summary="Upgrade a pending session block"
)
def edit_session_block(
     customer_id: int,
     block_id: int,
     body: SessionBlockUpdate,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     get_accessible_customer(db, token, customer_id)
     block = session_ledger.edit_pending_block(
          db,
          block_id,
          body.total_sessions,
          payment_method=body.payment_method,
          notes=body.notes,
          customer_id=customer_id,
          created_by_user_id=token.get("id"),
     )
     return build_block_response(block)


@router.delete(
     "/{customer_id}/session-blocks/{block_id}",
     response_model=DeleteBlockResponse,
     summary="Delete an unused session block"
)
def delete_session_block(
     customer_id: int,
     block_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     get_accessible_customer(db, token, customer_id)
     refunded = session_ledger.delete_block(
          db, block_id, customer_id=customer_id, created_by_user_id=token.get("id")
     )
     return DeleteBlockResponse(
          block_id=block_id,
          refunded_sessions=refunded,
          message=f"Session block deleted successfully. {refunded} sessions refunded.",
     )


@router.post(
     "/{customer_id}/sessions/consume",
     response_model=ConsumeResponse,
     summary="Consume sessions from the active block"
)
def consume_sessions(
     customer_id: int,
     body: ConsumeRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     get_accessible_customer(db, token, customer_id)
     result = session_ledger.consume_session(
          db,
          customer_id,
          body.sessions_to_consume,
          created_by_user_id=token.get("id"),
          notes=body.reason,
     )
     return ConsumeResponse(
          block_id=result.block_id,
          remaining_in_block=result.remaining,
          consumed=body.sessions_to_consume,
          block_completed=result.completed,
          activated_block_id=result.activated_block_id,
          message=f"Successfully consumed {body.sessions_to_consume} session(s)",
     )


@router.post(
     "/{customer_id}/sessions/refund",
     response_model=RefundResponse,
     summary="Refund sessions"
)
def refund_sessions(
     customer_id: int,
     body: RefundRequest,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     """
     Refund to **block_id**, or to the customer's active block.
     The refund never raises a block above its original size.
     """
     get_accessible_customer(db, token, customer_id)
     result = session_ledger.refund_session(
          db,
          customer_id,
          body.sessions_to_refund,
          target_block_id=body.block_id,
          created_by_user_id=token.get("id"),
          notes=body.reason,
     )
     return RefundResponse(
          block_id=result.block_id,
          new_remaining=result.new_remaining,
          refunded=result.refunded,
          status=result.status.value,
          message=f"Successfully refunded {result.refunded} session(s)",
     )


@router.get(
     "/{customer_id}/sessions/transactions",
     response_model=List[SessionTransactionResponse],
     summary="Session audit trail"
)
def list_session_transactions(
     customer_id: int,
     limit: int = Query(50, ge=1, le=500),
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     get_accessible_customer(db, token, customer_id)
     return [
          SessionTransactionResponse(
               id=t.id,
               session_block_id=t.session_block_id,
               transaction_type=t.transaction_type.value,
               amount=t.amount,
               appointment_id=t.appointment_id,
               created_by_user_id=t.created_by_user_id,
               notes=t.notes,
               created_at=t.created_at,
          )
          for t in session_ledger.list_transactions(db, customer_id, limit)
     ]
