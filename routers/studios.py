# routers/studios.py
"""
Studio-level session reports.

Studio owners only see their own studio; managers may query any studio.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from auth import owned_studio_id, require_staff
from database import get_session
from services import studio_report_service
from schemas.studio import StudioCustomersResponse, StudioSessionStats

router = APIRouter(prefix="/api/studios", tags=["studios"])


def ensure_studio_access(db: Session, token: dict, studio_id: int) -> None:
     scope = owned_studio_id(db, token)
     if scope is not None and scope != studio_id:
          raise HTTPException(
               status_code=status.HTTP_403_FORBIDDEN,
               detail="Access denied"
          )


@router.get(
     "/{studio_id}/sessions/stats",
     response_model=StudioSessionStats,
     summary="Session statistics of a studio"
)
def get_studio_session_stats(
     studio_id: int,
     from_date: Optional[date] = Query(None, description="First day, defaults to 30 days before to_date"),
     to_date: Optional[date] = Query(None, description="Last day (inclusive), defaults to today"),
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     """
     Purchases, deductions and refunds within the period, plus the
     studio's current active and pending session balances.
     """
     ensure_studio_access(db, token, studio_id)
     return studio_report_service.studio_session_stats(db, studio_id, from_date, to_date)


@router.get(
     "/{studio_id}/customers/sessions",
     response_model=StudioCustomersResponse,
     summary="Customers of a studio with their sessions"
)
def get_studio_customers_with_sessions(
     studio_id: int,
     db: Session = Depends(get_session),
     token: dict = Depends(require_staff)
):
     ensure_studio_access(db, token, studio_id)
     return StudioCustomersResponse(
          customers=studio_report_service.studio_customers_with_sessions(db, studio_id)
     )
